import logging
from typing import Iterable, List, Tuple

from perangkat.schemas.evaluasi_schema import KisiKisiSchema, KisiKisiUpdate, NilaiSchema, RekapNilaiSiswa, SiswaSchema
from perangkat.schemas.kurikulum_schema import ATPSchema, FilterKonteks, HasilSinkron, normalize_text
from perangkat.services.sync_service import ExactTextMatch, SimilarityPredicate, _write_all

logger = logging.getLogger(__name__)


def tp_fields(atp: ATPSchema) -> dict:
    """Field kisi-kisi yang selalu mengikuti baris ATP."""
    return {
        "atp_id": atp.id,
        "tujuan_pembelajaran": atp.tujuan_pembelajaran,
        "elemen": atp.elemen,
        "cp": atp.capaian_pembelajaran,
    }


def plan_kisikisi(
    atp: Iterable[ATPSchema],
    existing: Iterable[KisiKisiSchema],
    konteks: FilterKonteks,
    nama_asesmen: str,
    predicate: SimilarityPredicate = ExactTextMatch(),
) -> Tuple[List[dict], int]:
    """
    Satu baris kisi-kisi per TP untuk satu asesmen.

    TP yang sudah punya baris (atp_id sama atau teks TP sama) dilewati;
    nomor_soal melanjutkan nomor terbesar asesmen tsb.
    """
    partition = [
        k for k in existing
        if konteks.matches(k) and normalize_text(k.nama_asesmen) == normalize_text(nama_asesmen)
    ]
    known_ids = {k.atp_id for k in partition if k.atp_id}
    known_tp = [k.tujuan_pembelajaran for k in partition if k.tujuan_pembelajaran]
    nomor = max((k.nomor_soal or 0 for k in partition), default=0)

    planned, skipped = [], 0
    relevant = [a for a in atp if konteks.matches(a, with_semester=False)]
    for item in sorted(relevant, key=lambda a: a.index_order or 0):
        if item.id in known_ids or any(predicate(item.tujuan_pembelajaran, tp) for tp in known_tp):
            skipped += 1
            continue
        nomor += 1
        planned.append({
            **konteks.as_fields(),
            **tp_fields(item),
            "nama_asesmen": nama_asesmen,
            "nomor_soal": nomor,
        })
        known_ids.add(item.id)
        known_tp.append(item.tujuan_pembelajaran)
    return planned, skipped


async def sync_kisikisi(store, konteks: FilterKonteks, nama_asesmen: str) -> HasilSinkron:
    atp = [ATPSchema.model_validate(a) for a in await store.find("atp", kelas=konteks.kelas)]
    existing = [KisiKisiSchema.model_validate(k) for k in await store.find("kisikisi", kelas=konteks.kelas)]

    planned, skipped = plan_kisikisi(atp, existing, konteks, nama_asesmen)
    hasil = HasilSinkron(dilewati=skipped)
    await _write_all(store, "kisikisi", planned, hasil)
    logger.info("Kisi-kisi %s kelas %s: %s created, %s skipped", nama_asesmen, konteks.kelas, hasil.dibuat, hasil.dilewati)
    return hasil


async def update_kisikisi(store, kisi_id: int, changes: KisiKisiUpdate):
    payload = changes.model_dump(exclude_unset=True)
    if payload.get("atp_id"):
        # Ikuti isi baris ATP yang baru dipilih
        atp = ATPSchema.model_validate(await store.get("atp", payload["atp_id"]))
        payload.update(tp_fields(atp))
    return await store.update("kisikisi", kisi_id, payload)


def plan_nilai(
    siswa: Iterable[SiswaSchema],
    atp: Iterable[ATPSchema],
    existing: Iterable[NilaiSchema],
    konteks: FilterKonteks,
) -> Tuple[List[dict], int]:
    """Satu baris nilai (awal 0) untuk setiap pasangan siswa x TP yang belum ada."""
    known = {(n.siswa_id, n.atp_id) for n in existing}
    tps = sorted(
        (a for a in atp if konteks.matches(a, with_semester=False)),
        key=lambda a: a.index_order or 0,
    )

    planned, skipped = [], 0
    for s in sort_siswa(siswa):
        if str(s.kelas) != str(konteks.kelas):
            continue
        for tp in tps:
            if (s.id, tp.id) in known:
                skipped += 1
                continue
            planned.append({
                "siswa_id": s.id,
                "atp_id": tp.id,
                "mapel": konteks.mapel,
                "semester": konteks.semester or "1",
                "nilai": 0,
            })
            known.add((s.id, tp.id))
    return planned, skipped


async def sync_nilai(store, konteks: FilterKonteks) -> HasilSinkron:
    siswa = [SiswaSchema.model_validate(s) for s in await store.find("siswa", kelas=konteks.kelas)]
    atp = [ATPSchema.model_validate(a) for a in await store.find("atp", kelas=konteks.kelas)]
    ids = {s.id for s in siswa}
    existing = [NilaiSchema.model_validate(n) for n in await store.find("nilai") if n.siswa_id in ids]

    planned, skipped = plan_nilai(siswa, atp, existing, konteks)
    hasil = HasilSinkron(dilewati=skipped)
    await _write_all(store, "nilai", planned, hasil)
    return hasil


async def set_nilai(store, entry: NilaiSchema) -> NilaiSchema:
    rows = await store.find("nilai", siswa_id=entry.siswa_id, atp_id=entry.atp_id)
    if rows:
        row = await store.update("nilai", rows[0].id, {"nilai": entry.nilai})
    else:
        row = await store.create("nilai", entry.model_dump(exclude={"id"}))
    return NilaiSchema.model_validate(row)


def sort_siswa(siswa: Iterable[SiswaSchema]) -> List[SiswaSchema]:
    return sorted(siswa, key=lambda s: s.nama.upper())


def rekap_nilai(
    siswa: Iterable[SiswaSchema],
    atp: Iterable[ATPSchema],
    nilai: Iterable[NilaiSchema],
    konteks: FilterKonteks,
) -> List[RekapNilaiSiswa]:
    """Tabel nilai per siswa; TP tanpa nilai dihitung 0."""
    tp_ids = [a.id for a in sorted(atp, key=lambda a: a.index_order or 0) if konteks.matches(a, with_semester=False)]
    scores = {(n.siswa_id, n.atp_id): n.nilai for n in nilai}

    result = []
    for s in sort_siswa(siswa):
        if str(s.kelas) != str(konteks.kelas):
            continue
        row = {tp_id: scores.get((s.id, tp_id), 0) for tp_id in tp_ids}
        rata = round(sum(row.values()) / len(row), 2) if row else 0.0
        result.append(RekapNilaiSiswa(siswa_id=s.id, nis=s.nis, nama=s.nama, nilai=row, rata_rata=rata))
    return result

