import pytest

from perangkat.schemas.kurikulum_schema import (
    AnalisisSchema, CapaianPembelajaranSchema, FilterKonteks, parse_bulan_pelaksanaan,
)
from perangkat.services import sync_service
from perangkat.services.sync_service import ContainsTextMatch, ExactTextMatch, plan_analisis

KONTEKS = FilterKonteks(kelas="5", mapel="Matematika")
KONTEKS_SEM1 = FilterKonteks(kelas="5", mapel="Matematika", semester="1")


def test_filter_context_derives_phase():
    assert KONTEKS.fase.value == "Fase C"
    assert FilterKonteks(kelas="2", mapel="IPAS").fase.value == "Fase A"
    with pytest.raises(ValueError):
        FilterKonteks(kelas="9", mapel="IPAS")


def test_similarity_predicates():
    exact = ExactTextMatch()
    assert exact("  Memahami Pecahan ", "memahami pecahan")
    assert not exact("Memahami pecahan.", "memahami pecahan")

    contains = ContainsTextMatch()
    assert contains("Pecahan: Pecahan senilai", "pecahan")
    assert contains("pecahan", "Pecahan: Pecahan senilai")
    assert not contains("Bilangan cacah", "Pecahan")


def test_bulan_pelaksanaan_skips_bad_tokens():
    dates = parse_bulan_pelaksanaan("Juli|1|7,rusak,Agustus|x|2,Juli|2|14")
    assert [d.token for d in dates] == ["Juli|1|7", "Juli|2|14"]


async def _seed_analisis(store, tps):
    cp = await store.create("cps", {"fase": "Fase C", "mapel": "Matematika", "elemen": "Bilangan", "deskripsi": "CP bilangan"})
    for order, tp in tps:
        await store.create("analisis", {
            "cp_id": cp.id, "fase": "Fase C", "kelas": "5", "mapel": "Matematika",
            "materi": f"Materi {order}", "sub_materi": "", "tujuan_pembelajaran": tp, "index_order": order,
        })
    return cp


@pytest.mark.asyncio
async def test_propagation_is_idempotent_and_keeps_order(store):
    await _seed_analisis(store, [(2, "TP dua"), (1, "TP satu"), (3, "TP tiga")])

    first = await sync_service.propagate(store, "atp", KONTEKS)
    second = await sync_service.propagate(store, "atp", KONTEKS)

    assert (first.dibuat, first.dilewati) == (3, 0)
    assert (second.dibuat, second.dilewati) == (0, 3)
    assert second.pesan == "Data sudah sinkron, tidak ada data baru."

    atp = sorted(await store.find("atp", kelas="5"), key=lambda a: a.index_order)
    assert [a.tujuan_pembelajaran for a in atp] == ["TP satu", "TP dua", "TP tiga"]
    assert atp[0].elemen == "Bilangan"
    assert atp[0].capaian_pembelajaran == "CP bilangan"


@pytest.mark.asyncio
async def test_full_chain_to_promes(store):
    await _seed_analisis(store, [(1, "TP satu"), (2, "TP dua")])
    await sync_service.propagate(store, "atp", KONTEKS)
    for a in await store.find("atp", kelas="5"):
        await store.update("atp", a.id, {"alokasi_waktu": "4"})

    prota = await sync_service.propagate(store, "prota", KONTEKS)
    promes = await sync_service.propagate(store, "promes", KONTEKS_SEM1)
    again = await sync_service.propagate(store, "promes", KONTEKS_SEM1)

    assert prota.dibuat == 2
    assert promes.dibuat == 2
    assert again.dibuat == 0
    rows = sorted(await store.find("promes", kelas="5"), key=lambda p: p.index_order)
    assert [r.tujuan_pembelajaran for r in rows] == ["TP satu", "TP dua"]
    assert all(r.alokasi_waktu == "4" and r.semester == "1" for r in rows)
    assert all(r.bulan_pelaksanaan == "" for r in rows)


@pytest.mark.asyncio
async def test_existing_target_with_different_case_is_skipped(store):
    await _seed_analisis(store, [(1, "Memahami pecahan")])
    await store.create("atp", {"fase": "Fase C", "kelas": "5", "mapel": "Matematika", "tujuan_pembelajaran": "  MEMAHAMI PECAHAN "})
    # Kelas lain tidak mempengaruhi kelas 5
    await store.create("atp", {"fase": "Fase C", "kelas": "6", "mapel": "Matematika", "tujuan_pembelajaran": "TP lain"})

    hasil = await sync_service.propagate(store, "atp", KONTEKS)

    assert (hasil.dibuat, hasil.dilewati) == (0, 1)


@pytest.mark.asyncio
async def test_duplicate_sources_create_one_target(store):
    await _seed_analisis(store, [(1, "TP sama"), (2, "tp sama")])

    hasil = await sync_service.propagate(store, "atp", KONTEKS)

    assert (hasil.dibuat, hasil.dilewati) == (1, 1)


def test_plan_analisis_continues_order():
    cp = CapaianPembelajaranSchema(id=7, fase="Fase C", mapel="Matematika")
    existing = [
        AnalisisSchema(fase="Fase C", kelas="5", mapel="Matematika", tujuan_pembelajaran="TP lama", index_order=2),
        AnalisisSchema(fase="Fase C", kelas="5", mapel="IPAS", tujuan_pembelajaran="TP IPAS", index_order=9),
    ]
    results = [
        {"materi": "Pecahan", "sub_materi": "Senilai", "tp": "TP baru"},
        {"materi": "Pecahan", "sub_materi": "", "tp": "tp lama"},
        {"materi": "Kosong", "sub_materi": "", "tp": "  "},
        {"materi": "Desimal", "subMateri": "Persen", "tp": "TP kedua"},
    ]

    planned, skipped = plan_analisis(cp, results, existing, KONTEKS)

    assert skipped == 1
    assert [(p["tujuan_pembelajaran"], p["index_order"]) for p in planned] == [("TP baru", 3), ("TP kedua", 4)]
    assert planned[1]["sub_materi"] == "Persen"
    assert planned[0]["cp_id"] == 7


@pytest.mark.asyncio
async def test_append_row_goes_to_end(store):
    await store.create("promes", {"fase": "Fase C", "kelas": "5", "semester": "1", "mapel": "Matematika", "index_order": 4})
    await store.create("promes", {"fase": "Fase C", "kelas": "5", "semester": "2", "mapel": "Matematika", "index_order": 10})

    row = await sync_service.append_row(store, "promes", KONTEKS_SEM1, {"materi_pokok": "ASESMEN SUMATIF", "is_asesmen": True})
    atp = await sync_service.append_row(store, "atp", KONTEKS_SEM1, {})

    assert row.index_order == 5
    assert row.semester == "1"
    assert row.is_asesmen is True
    assert atp.index_order == 1


@pytest.mark.asyncio
async def test_failed_write_does_not_stop_propagation(store, fail_commit):
    await _seed_analisis(store, [(1, "TP satu"), (2, "TP dua"), (3, "TP tiga")])
    fail_commit(2)

    hasil = await sync_service.propagate(store, "atp", KONTEKS)

    assert (hasil.dibuat, hasil.gagal) == (2, 1)
    atp = await store.find("atp", kelas="5")
    assert sorted(a.tujuan_pembelajaran for a in atp) == ["TP satu", "TP tiga"]
