import calendar
import logging
import math
from datetime import date
from typing import Iterable, List, Optional

from perangkat.schemas.kalender_schema import (
    EventKalenderSchema, HariEfektifSchema, RincianBulan, RingkasanHariEfektif,
)
from perangkat.schemas.kurikulum_schema import normalize_text
from perangkat.utils.time_utils import bulan_index, daftar_bulan, tahun_untuk_bulan

logger = logging.getLogger(__name__)

DEFAULT_JUMLAH_MINGGU = 4


def count_mondays(year: int, month: int) -> int:
    days_in_month = calendar.monthrange(year, month)[1]
    return sum(1 for d in range(1, days_in_month + 1) if date(year, month, d).weekday() == 0)


def week_bucket(day: date) -> int:
    # Minggu ke-n dalam bulan; offset = hari pertama bulan (Minggu = 0)
    offset = (date(day.year, day.month, 1).weekday() + 1) % 7
    return math.ceil((day.day + offset) / 7)


def holidays_in_month(events: Iterable[EventKalenderSchema], year: int, month: int) -> List[EventKalenderSchema]:
    result = []
    for event in events:
        if event.type != "libur":
            continue
        try:
            tanggal = event.tanggal
        except ValueError:
            logger.warning("Skipping calendar event %s with bad date %r", event.id, event.date)
            continue
        if tanggal.year == year and tanggal.month == month:
            result.append(event)
    return sorted(result, key=lambda e: e.date)


def compute_effective_weeks(
    kelas: str,
    semester: int,
    bulan: str,
    tahun_pelajaran: str,
    events: Iterable[EventKalenderSchema],
    jumlah_minggu: Optional[int] = None,
) -> HariEfektifSchema:
    """
    Hitung rincian minggu efektif satu bulan dari kalender.

    jumlah_minggu default = banyaknya hari Senin di bulan tsb. Minggu tidak efektif
    = banyaknya minggu (bucket) berbeda yang memuat minimal satu event libur.
    """
    month = bulan_index(bulan)
    year = tahun_untuk_bulan(tahun_pelajaran, month)

    if jumlah_minggu is None:
        jumlah_minggu = count_mondays(year, month) or DEFAULT_JUMLAH_MINGGU

    libur = holidays_in_month(events, year, month)
    weeks = {week_bucket(e.tanggal) for e in libur}

    titles = []
    for e in libur:
        if e.title not in titles:
            titles.append(e.title)

    record = HariEfektifSchema(
        kelas=kelas,
        semester=int(semester),
        bulan=bulan,
        jumlah_minggu=jumlah_minggu,
        minggu_tidak_efektif=len(weeks),
        keterangan=", ".join(titles),
    )
    if record.minggu_tidak_efektif > record.jumlah_minggu:
        logger.warning(
            "Kelas %s %s: %s non-effective weeks exceed %s total weeks, effective weeks clamped to 0",
            kelas, bulan, record.minggu_tidak_efektif, record.jumlah_minggu,
        )
    return record


def fill_semester(records: Iterable[HariEfektifSchema], kelas: str, semester: int) -> List[HariEfektifSchema]:
    """Enam bulan satu semester; bulan tanpa data memakai nilai default."""
    by_bulan = {r.bulan: r for r in records if r.kelas == kelas and int(r.semester) == int(semester)}
    return [
        by_bulan.get(bulan) or HariEfektifSchema(kelas=kelas, semester=int(semester), bulan=bulan)
        for bulan in daftar_bulan(semester)
    ]


def jp_per_minggu(jadwal: Iterable, kelas: str, mapel: str) -> int:
    return sum(
        1 for j in jadwal
        if str(j.kelas) == str(kelas) and normalize_text(j.mapel) == normalize_text(mapel)
    )


def summarize(records: List[HariEfektifSchema], kelas: str, semester: int, jp_minggu: int,
              mapel: Optional[str] = None) -> RingkasanHariEfektif:
    rincian = [
        RincianBulan(
            bulan=r.bulan,
            jumlah_minggu=r.jumlah_minggu,
            minggu_tidak_efektif=r.minggu_tidak_efektif,
            minggu_efektif=r.minggu_efektif,
            jp_efektif=r.minggu_efektif * jp_minggu,
            keterangan=r.keterangan or "",
        )
        for r in records
    ]
    total_minggu = sum(r.jumlah_minggu for r in rincian)
    total_tidak_efektif = sum(r.minggu_tidak_efektif for r in rincian)
    total_efektif = sum(r.minggu_efektif for r in rincian)
    return RingkasanHariEfektif(
        kelas=kelas,
        semester=int(semester),
        mapel=mapel,
        jp_per_minggu=jp_minggu,
        rincian=rincian,
        total_minggu=total_minggu,
        total_tidak_efektif=total_tidak_efektif,
        total_efektif=total_efektif,
        total_jp=total_efektif * jp_minggu,
    )


async def sync_from_calendar(store, kelas: str, semester: int, tahun_pelajaran: str) -> List[HariEfektifSchema]:
    """Tulis ulang rincian enam bulan dari event kalender (menimpa, bukan menambah)."""
    events = [EventKalenderSchema.model_validate(e) for e in await store.find("kalender_events")]
    existing = {
        r.bulan: r for r in await store.find("hari_efektif", kelas=kelas, semester=int(semester))
    }

    result = []
    for bulan in daftar_bulan(semester):
        record = compute_effective_weeks(kelas, semester, bulan, tahun_pelajaran, events)
        payload = record.model_dump(exclude={"id", "minggu_efektif"})
        if bulan in existing:
            row = await store.update("hari_efektif", existing[bulan].id, payload)
        else:
            row = await store.create("hari_efektif", payload)
        result.append(HariEfektifSchema.model_validate(row))
    logger.info("Synced effective weeks for kelas %s semester %s from calendar", kelas, semester)
    return result


async def update_month(store, kelas: str, semester: int, bulan: str, changes: dict) -> HariEfektifSchema:
    """Edit manual satu bulan; baris dibuat jika belum ada."""
    rows = await store.find("hari_efektif", kelas=kelas, semester=int(semester), bulan=bulan)
    if rows:
        row = await store.update("hari_efektif", rows[0].id, changes)
    else:
        base = HariEfektifSchema(kelas=kelas, semester=int(semester), bulan=bulan)
        payload = {**base.model_dump(exclude={"id", "minggu_efektif"}), **changes}
        row = await store.create("hari_efektif", payload)
    return HariEfektifSchema.model_validate(row)
