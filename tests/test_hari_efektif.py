import logging
from datetime import date

import pytest

from perangkat.schemas.kalender_schema import EventKalenderSchema, HariEfektifSchema
from perangkat.services import hari_efektif_service
from perangkat.services.hari_efektif_service import (
    compute_effective_weeks, count_mondays, fill_semester, summarize, week_bucket,
)


def libur(tanggal, title="Libur"):
    return EventKalenderSchema(date=tanggal, title=title, type="libur")


def test_count_mondays():
    assert count_mondays(2024, 7) == 5  # 1, 8, 15, 22, 29
    assert count_mondays(2025, 2) == 4
    assert count_mondays(2024, 9) == 5


def test_week_bucket_starts_on_sunday():
    # 1 Juli 2024 jatuh pada hari Senin
    assert week_bucket(date(2024, 7, 1)) == 1
    assert week_bucket(date(2024, 7, 6)) == 1
    assert week_bucket(date(2024, 7, 7)) == 2
    assert week_bucket(date(2024, 7, 15)) == 3


def test_two_holidays_in_same_week_count_once():
    events = [libur("2024-07-15", "Libur Semester"), libur("2024-07-17", "Tahun Baru Islam")]

    record = compute_effective_weeks("5", 1, "Juli", "2024/2025", events)

    assert record.jumlah_minggu == 5
    assert record.minggu_tidak_efektif == 1
    assert record.minggu_efektif == 4
    assert record.keterangan == "Libur Semester, Tahun Baru Islam"


def test_month_without_holidays():
    events = [
        EventKalenderSchema(date="2024-08-20", title="Ujian Tengah Semester", type="ujian"),
        libur("2024-09-16", "Maulid Nabi"),
    ]

    record = compute_effective_weeks("5", 1, "Agustus", "2024/2025", events)

    assert record.minggu_tidak_efektif == 0
    assert record.keterangan == ""


def test_holiday_titles_are_deduplicated():
    events = [libur("2024-12-23", "Libur Semester"), libur("2024-12-30", "Libur Semester")]

    record = compute_effective_weeks("5", 1, "Desember", "2024/2025", events)

    assert record.minggu_tidak_efektif == 2
    assert record.keterangan == "Libur Semester"


def test_second_semester_uses_second_year():
    events = [libur("2025-01-01", "Tahun Baru"), libur("2024-01-01", "Tahun Baru")]

    record = compute_effective_weeks("5", 2, "Januari", "2024/2025", events)

    assert record.minggu_tidak_efektif == 1


def test_effective_weeks_never_negative(caplog):
    events = [libur("2024-07-01"), libur("2024-07-08"), libur("2024-07-15")]

    with caplog.at_level(logging.WARNING):
        record = compute_effective_weeks("5", 1, "Juli", "2024/2025", events, jumlah_minggu=2)

    assert record.minggu_tidak_efektif == 3
    assert record.minggu_efektif == 0
    assert "clamped" in caplog.text


def test_fill_semester_and_summary():
    records = fill_semester(
        [HariEfektifSchema(kelas="5", semester=1, bulan="Juli", jumlah_minggu=5, minggu_tidak_efektif=1)],
        "5", 1,
    )

    assert [r.bulan for r in records] == ["Juli", "Agustus", "September", "Oktober", "November", "Desember"]

    ringkasan = summarize(records, "5", 1, jp_minggu=3, mapel="Matematika")
    assert ringkasan.total_minggu == 25
    assert ringkasan.total_tidak_efektif == 1
    assert ringkasan.total_efektif == 24
    assert ringkasan.total_jp == 72
    assert ringkasan.rincian[0].jp_efektif == 12


@pytest.mark.asyncio
async def test_sync_from_calendar_overwrites(store):
    await store.create("kalender_events", {"date": "2024-07-15", "title": "Libur Semester", "type": "libur"})
    await hari_efektif_service.update_month(store, "5", 1, "Juli", {"jumlah_minggu": 2, "keterangan": "manual"})

    await hari_efektif_service.sync_from_calendar(store, "5", 1, "2024/2025")
    result = await hari_efektif_service.sync_from_calendar(store, "5", 1, "2024/2025")

    rows = await store.find("hari_efektif", kelas="5", semester=1)
    assert len(rows) == 6
    juli = next(r for r in result if r.bulan == "Juli")
    assert juli.jumlah_minggu == 5
    assert juli.minggu_tidak_efektif == 1
    assert juli.keterangan == "Libur Semester"
