import pytz
from datetime import date, datetime
from typing import List, Tuple

BULAN = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]
BULAN_SEMESTER = {
    1: BULAN[6:],
    2: BULAN[:6],
}
# Urutan mengikuti date.weekday()
HARI = ["Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu"]
HARI_SEKOLAH = HARI[:5]


def get_jakarta_time():
    """
    Returns the current time in Asia/Jakarta (WIB) as a naive datetime.
    """
    return datetime.now(pytz.timezone("Asia/Jakarta")).replace(tzinfo=None)


def parse_tahun_pelajaran(tahun_pelajaran: str) -> Tuple[int, int]:
    """'2024/2025' -> (2024, 2025). Tahun kedua boleh kosong."""
    parts = str(tahun_pelajaran).split("/")
    try:
        start = int(parts[0].strip())
    except ValueError:
        raise ValueError(f"Tahun pelajaran tidak valid: {tahun_pelajaran!r}")
    try:
        end = int(parts[1].strip())
    except (IndexError, ValueError):
        end = start + 1
    return start, end


def bulan_index(bulan: str) -> int:
    """Nama bulan -> 1..12."""
    return BULAN.index(bulan.strip()) + 1


def tahun_untuk_bulan(tahun_pelajaran: str, month: int) -> int:
    # Juli-Desember ada di tahun pertama, Januari-Juni di tahun kedua
    start, end = parse_tahun_pelajaran(tahun_pelajaran)
    return start if month >= 7 else end


def semester_for_month(month: int) -> int:
    return 1 if month >= 7 else 2


def rentang_semester(tahun_pelajaran: str, semester: int) -> Tuple[date, date]:
    start, end = parse_tahun_pelajaran(tahun_pelajaran)
    if int(semester) == 1:
        return date(start, 7, 1), date(start, 12, 31)
    return date(end, 1, 1), date(end, 6, 30)


def nama_hari(day: date) -> str:
    return HARI[day.weekday()]


def daftar_bulan(semester: int) -> List[str]:
    return list(BULAN_SEMESTER[int(semester)])


def tahun_pelajaran_berjalan(now: datetime = None) -> str:
    """Tahun pelajaran yang sedang berjalan menurut waktu Jakarta, mis. '2025/2026'."""
    now = now or get_jakarta_time()
    if semester_for_month(now.month) == 1:
        return f"{now.year}/{now.year + 1}"
    return f"{now.year - 1}/{now.year}"
