import logging
import math
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Sequence

from perangkat.schemas.kalender_schema import EventKalenderSchema, JadwalSchema
from perangkat.schemas.kurikulum_schema import (
    FilterKonteks, HasilSinkron, PromesSchema, TanggalPelaksanaan,
    format_bulan_pelaksanaan, normalize_text,
)
from perangkat.store import StoreWriteError
from perangkat.utils.time_utils import BULAN, HARI_SEKOLAH, nama_hari, rentang_semester

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"^\s*(\d+(?:[.,]\d+)?)")


class ScheduleNotConfigured(Exception):
    def __init__(self, kelas: str, mapel: str):
        super().__init__(f"Jadwal {mapel} kelas {kelas} belum diatur di menu Hari Efektif!")
        self.kelas = kelas
        self.mapel = mapel


@dataclass(frozen=True)
class Slot:
    """Satu jam pelajaran efektif pada tanggal tertentu."""
    tanggal: date
    jam: int # urutan jam pelajaran mapel ini pada hari itu, mulai 1
    jp_hari: int

    @property
    def bulan(self) -> str:
        return BULAN[self.tanggal.month - 1]

    @property
    def minggu(self) -> int:
        return math.ceil(self.tanggal.day / 7)

    def as_tanggal_pelaksanaan(self) -> TanggalPelaksanaan:
        return TanggalPelaksanaan(bulan=self.bulan, minggu=self.minggu, tanggal=self.tanggal.day)


def parse_jp(value) -> float:
    """'4' -> 4.0, '2,5' -> 2.5, '4 JP' -> 4.0, selain itu 0."""
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER.match(str(value or ""))
    if not match:
        return 0.0
    return float(match.group(1).replace(",", "."))


def periods_per_day(jadwal: Iterable[JadwalSchema], kelas: str, mapel: str) -> Dict[str, int]:
    info: Dict[str, int] = {}
    for hari in HARI_SEKOLAH:
        count = sum(
            1 for j in jadwal
            if str(j.kelas) == str(kelas) and j.hari == hari and normalize_text(j.mapel) == normalize_text(mapel)
        )
        if count:
            info[hari] = count
    return info


def holiday_dates(events: Iterable[EventKalenderSchema]) -> set:
    result = set()
    for e in events:
        if e.type != "libur":
            continue
        try:
            result.add(e.tanggal)
        except ValueError:
            logger.warning("Skipping calendar event %s with bad date %r", e.id, e.date)
    return result


def build_slots(periods: Dict[str, int], start: date, end: date, events: Iterable[EventKalenderSchema]) -> List[Slot]:
    """Urutan jam efektif dalam rentang tanggal, melewati hari libur."""
    libur = holiday_dates(events)
    slots = []
    current = start
    while current <= end:
        jp = periods.get(nama_hari(current), 0)
        if jp and current not in libur:
            slots.extend(Slot(tanggal=current, jam=i + 1, jp_hari=jp) for i in range(jp))
        current += timedelta(days=1)
    return slots


def assign_slots(items: Sequence[PromesSchema], slots: Sequence[Slot]) -> Dict[int, List[TanggalPelaksanaan]]:
    """
    Bagi urutan slot secara linear ke setiap item sesuai index_order.

    Setiap slot bernilai satu JP (satu jam pelajaran, bukan satu hari) dan hanya
    dipakai sekali. Item mengambil slot sampai sisa JP <= 0; jika slot habis, item
    mendapat tanggal yang tersisa saja.

    Karena itu hari dengan 2 JP bisa terbagi ke dua item berurutan: jam ke-1
    menutup item sebelumnya, jam ke-2 membuka item berikutnya. Tanggal itu lalu
    muncul di kedua item, dan tidak ada item yang memakai lebih dari ceil(JP) slot.
    """
    result: Dict[int, List[TanggalPelaksanaan]] = {}
    cursor = 0
    for item in sorted(items, key=lambda i: i.index_order or 0):
        remaining = parse_jp(item.alokasi_waktu)
        dates: List[TanggalPelaksanaan] = []
        while remaining > 0 and cursor < len(slots):
            tanggal = slots[cursor].as_tanggal_pelaksanaan()
            if tanggal not in dates:
                dates.append(tanggal)
            remaining -= 1
            cursor += 1
        result[item.id] = dates
    return result


def weekly_pattern(dates: Iterable[TanggalPelaksanaan]) -> Dict[str, List[int]]:
    pattern: Dict[str, List[int]] = {}
    for d in dates:
        weeks = pattern.setdefault(d.bulan, [])
        if d.minggu not in weeks:
            weeks.append(d.minggu)
    return {bulan: sorted(weeks) for bulan, weeks in pattern.items()}


async def schedule_promes(store, konteks: FilterKonteks, tahun_pelajaran: str) -> HasilSinkron:
    """Isi ulang bulan_pelaksanaan seluruh PROMES pada konteks ini."""
    jadwal = [JadwalSchema.model_validate(j) for j in await store.find("jadwal_pelajaran", kelas=konteks.kelas)]
    periods = periods_per_day(jadwal, konteks.kelas, konteks.mapel)
    if not periods:
        raise ScheduleNotConfigured(konteks.kelas, konteks.mapel)

    events = [EventKalenderSchema.model_validate(e) for e in await store.find("kalender_events")]
    start, end = rentang_semester(tahun_pelajaran, int(konteks.semester or 1))
    slots = build_slots(periods, start, end, events)

    promes = [
        PromesSchema.model_validate(p)
        for p in await store.find("promes", kelas=konteks.kelas)
        if konteks.matches(p)
    ]
    assigned = assign_slots(promes, slots)

    hasil = HasilSinkron()
    for item in sorted(promes, key=lambda i: i.index_order or 0):
        dates = assigned[item.id]
        try:
            await store.update("promes", item.id, {
                "bulan_pelaksanaan": format_bulan_pelaksanaan(dates),
                "jadwal_mingguan": weekly_pattern(dates),
            })
            hasil.dibuat += 1
        except StoreWriteError:
            logger.error("Scheduling promes %s failed, continuing", item.id)
            hasil.gagal += 1
    logger.info(
        "Scheduled %s promes rows for %s kelas %s (%s slots available)",
        hasil.dibuat, konteks.mapel, konteks.kelas, len(slots),
    )
    return hasil
