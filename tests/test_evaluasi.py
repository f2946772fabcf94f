import pytest

from perangkat.schemas.evaluasi_schema import KisiKisiSchema, KisiKisiUpdate, NilaiSchema, SiswaSchema
from perangkat.schemas.kurikulum_schema import ATPSchema, FilterKonteks
from perangkat.services import evaluasi_service
from perangkat.services.evaluasi_service import plan_kisikisi, plan_nilai, rekap_nilai

KONTEKS = FilterKonteks(kelas="5", mapel="Matematika", semester="1")


def atp(atp_id, tp, order, mapel="Matematika"):
    return ATPSchema(
        id=atp_id, fase="Fase C", kelas="5", mapel=mapel, elemen="Bilangan",
        capaian_pembelajaran="CP bilangan", tujuan_pembelajaran=tp, index_order=order,
    )


def kisi(atp_id, tp, nomor, nama_asesmen="SAS"):
    return KisiKisiSchema(
        atp_id=atp_id, fase="Fase C", kelas="5", semester="1", mapel="Matematika",
        nama_asesmen=nama_asesmen, tujuan_pembelajaran=tp, nomor_soal=nomor,
    )


ATP = [atp(2, "TP dua", 2), atp(1, "TP satu", 1), atp(3, "TP IPAS", 1, mapel="IPAS")]


def test_kisikisi_follows_atp_order():
    planned, skipped = plan_kisikisi(ATP, [], KONTEKS, "SAS")

    assert skipped == 0
    assert [(p["atp_id"], p["nomor_soal"]) for p in planned] == [(1, 1), (2, 2)]
    assert planned[0]["cp"] == "CP bilangan"
    assert planned[0]["elemen"] == "Bilangan"
    assert planned[0]["semester"] == "1"


def test_kisikisi_skips_known_tp_and_continues_numbering():
    existing = [kisi(1, "TP satu", 4)]

    planned, skipped = plan_kisikisi(ATP, existing, KONTEKS, "SAS")

    assert skipped == 1
    assert [(p["atp_id"], p["nomor_soal"]) for p in planned] == [(2, 5)]


def test_kisikisi_matches_tp_text_when_link_is_missing():
    planned, skipped = plan_kisikisi(ATP, [kisi(None, " tp dua ", 1)], KONTEKS, "SAS")

    assert skipped == 1
    assert [p["atp_id"] for p in planned] == [1]


def test_kisikisi_assessments_are_independent():
    planned, _ = plan_kisikisi(ATP, [kisi(1, "TP satu", 1, nama_asesmen="STS")], KONTEKS, "SAS")

    assert [p["nomor_soal"] for p in planned] == [1, 2]


def test_nilai_rows_for_missing_pairs_only():
    siswa = [
        SiswaSchema(id=1, nama="BUDI", kelas="5"),
        SiswaSchema(id=2, nama="ANI", kelas="5"),
        SiswaSchema(id=3, nama="CITRA", kelas="4"),
    ]
    existing = [NilaiSchema(siswa_id=1, atp_id=1, nilai=80)]

    planned, skipped = plan_nilai(siswa, ATP, existing, KONTEKS)

    assert skipped == 1
    assert [(p["siswa_id"], p["atp_id"]) for p in planned] == [(2, 1), (2, 2), (1, 2)]
    assert {p["nilai"] for p in planned} == {0}
    assert {p["mapel"] for p in planned} == {"Matematika"}


def test_rekap_counts_missing_scores_as_zero():
    siswa = [SiswaSchema(id=1, nis="101", nama="BUDI", kelas="5"), SiswaSchema(id=2, nama="ANI", kelas="5")]
    nilai = [
        NilaiSchema(siswa_id=1, atp_id=1, nilai=80),
        NilaiSchema(siswa_id=1, atp_id=2, nilai=91),
        NilaiSchema(siswa_id=2, atp_id=1, nilai=70),
    ]

    rekap = rekap_nilai(siswa, ATP, nilai, FilterKonteks(kelas="5", mapel="Matematika"))

    assert [r.nama for r in rekap] == ["ANI", "BUDI"]
    assert rekap[0].nilai == {1: 70, 2: 0}
    assert rekap[0].rata_rata == 35.0
    assert rekap[1].rata_rata == 85.5


async def _seed_atp(store):
    rows = []
    for order, tp in [(1, "TP satu"), (2, "TP dua")]:
        rows.append(await store.create("atp", {
            "fase": "Fase C", "kelas": "5", "mapel": "Matematika", "elemen": "Bilangan",
            "capaian_pembelajaran": "CP bilangan", "tujuan_pembelajaran": tp, "index_order": order,
        }))
    return rows


@pytest.mark.asyncio
async def test_sync_kisikisi_twice_creates_once(store):
    await _seed_atp(store)

    first = await evaluasi_service.sync_kisikisi(store, KONTEKS, "SAS")
    second = await evaluasi_service.sync_kisikisi(store, KONTEKS, "SAS")

    assert (first.dibuat, first.dilewati) == (2, 0)
    assert (second.dibuat, second.dilewati) == (0, 2)
    assert len(await store.find("kisikisi", kelas="5")) == 2


@pytest.mark.asyncio
async def test_sync_nilai_twice_creates_once(store):
    await _seed_atp(store)
    await store.create("siswa", {"nama": "ANI", "kelas": "5"})
    await store.create("siswa", {"nama": "BUDI", "kelas": "5"})

    first = await evaluasi_service.sync_nilai(store, KONTEKS)
    second = await evaluasi_service.sync_nilai(store, KONTEKS)

    assert (first.dibuat, first.dilewati) == (4, 0)
    assert (second.dibuat, second.dilewati) == (0, 4)


@pytest.mark.asyncio
async def test_set_nilai_updates_existing_row(store):
    tp, _ = await _seed_atp(store)
    siswa = await store.create("siswa", {"nama": "ANI", "kelas": "5"})

    await evaluasi_service.set_nilai(store, NilaiSchema(siswa_id=siswa.id, atp_id=tp.id, nilai=60))
    saved = await evaluasi_service.set_nilai(store, NilaiSchema(siswa_id=siswa.id, atp_id=tp.id, nilai=90))

    rows = await store.find("nilai", siswa_id=siswa.id)
    assert len(rows) == 1
    assert saved.nilai == rows[0].nilai == 90


@pytest.mark.asyncio
async def test_changing_kisikisi_tp_copies_atp_fields(store):
    satu, dua = await _seed_atp(store)
    await evaluasi_service.sync_kisikisi(store, KONTEKS, "SAS")
    row = (await store.find("kisikisi", atp_id=satu.id))[0]

    updated = await evaluasi_service.update_kisikisi(store, row.id, KisiKisiUpdate(atp_id=dua.id, soal="2 + 2 = ..."))

    assert updated.tujuan_pembelajaran == "TP dua"
    assert updated.soal == "2 + 2 = ..."
    assert updated.nomor_soal == 1
