import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from perangkat.schemas.kurikulum_schema import (
    AnalisisSchema, ATPSchema, CapaianPembelajaranSchema, FilterKonteks, HasilSinkron,
    ProtaSchema, PromesSchema, normalize_text,
)
from perangkat.store import StoreWriteError

logger = logging.getLogger(__name__)


class SimilarityPredicate:
    """Menentukan apakah dua teks dianggap data yang sama."""

    def __call__(self, a: Optional[str], b: Optional[str]) -> bool:
        raise NotImplementedError

    def matches_key(self, a: Sequence[str], b: Sequence[str]) -> bool:
        return len(a) == len(b) and all(self(x, y) for x, y in zip(a, b))


class ExactTextMatch(SimilarityPredicate):
    def __call__(self, a, b):
        return normalize_text(a) == normalize_text(b)


class ContainsTextMatch(SimilarityPredicate):
    """Sama jika salah satu teks memuat teks lainnya (tanpa beda huruf besar/kecil)."""

    def __call__(self, a, b):
        a, b = normalize_text(a), normalize_text(b)
        return a in b or b in a


@dataclass(frozen=True)
class Tahap:
    name: str
    source: str
    target: str
    source_schema: Any
    target_schema: Any
    build: Callable[[Any, FilterKonteks, Dict[str, Any]], dict]
    key: Callable[[Any], Tuple[str, ...]]
    source_semester: bool = False
    target_semester: bool = False
    target_fase: bool = True
    predicate: SimilarityPredicate = ExactTextMatch()


def _analisis_to_atp(item: AnalisisSchema, konteks: FilterKonteks, lookup: Dict[str, Any]) -> dict:
    cp = lookup.get("cps", {}).get(item.cp_id)
    return {
        **konteks.as_fields(with_semester=False),
        "elemen": cp.elemen if cp else "",
        "capaian_pembelajaran": cp.deskripsi if cp else "",
        "materi": item.materi,
        "sub_materi": item.sub_materi,
        "tujuan_pembelajaran": item.tujuan_pembelajaran,
        "index_order": item.index_order or 0,
    }


def _atp_to_prota(item: ATPSchema, konteks: FilterKonteks, lookup) -> dict:
    return {
        **konteks.as_fields(with_semester=False),
        "tujuan_pembelajaran": item.tujuan_pembelajaran,
        "materi_pokok": item.materi,
        "sub_materi": item.sub_materi,
        "jp": item.alokasi_waktu,
        "semester": "1",
        "index_order": item.index_order or 0,
    }


def _prota_to_promes(item: ProtaSchema, konteks: FilterKonteks, lookup) -> dict:
    return {
        **konteks.as_fields(),
        "materi_pokok": item.materi_pokok,
        "sub_materi": item.sub_materi,
        "tujuan_pembelajaran": item.tujuan_pembelajaran,
        "alokasi_waktu": item.jp,
        "bulan_pelaksanaan": "",
        "jadwal_mingguan": {},
        "keterangan": "",
        "is_asesmen": False,
        "index_order": item.index_order or 0,
    }


def _tp_key(item) -> Tuple[str, ...]:
    return (_field(item, "tujuan_pembelajaran"),)


def _tp_materi_key(item) -> Tuple[str, ...]:
    return (_field(item, "tujuan_pembelajaran"), _field(item, "materi_pokok"))


def _field(item, name: str) -> str:
    if isinstance(item, dict):
        return item.get(name) or ""
    return getattr(item, name, "") or ""


TAHAP = {
    "atp": Tahap(
        name="analisis->atp", source="analisis", target="atp",
        source_schema=AnalisisSchema, target_schema=ATPSchema,
        build=_analisis_to_atp, key=_tp_key,
        # ATP lama tidak membedakan fase saat cek duplikat
        target_fase=False,
    ),
    "prota": Tahap(
        name="atp->prota", source="atp", target="prota",
        source_schema=ATPSchema, target_schema=ProtaSchema,
        build=_atp_to_prota, key=_tp_key,
    ),
    "promes": Tahap(
        name="prota->promes", source="prota", target="promes",
        source_schema=ProtaSchema, target_schema=PromesSchema,
        build=_prota_to_promes, key=_tp_materi_key,
        source_semester=True, target_semester=True,
    ),
}


def plan_propagation(
    tahap: Tahap,
    sources: Iterable[Any],
    targets: Iterable[Any],
    konteks: FilterKonteks,
    lookup: Optional[Dict[str, Any]] = None,
) -> Tuple[List[dict], int]:
    """
    Susun data baru untuk tahap target, berurutan sesuai index_order sumber.

    Mengembalikan (data_baru, jumlah_dilewati). Sumber yang kuncinya sudah ada
    di target (atau sudah direncanakan di putaran ini) dilewati.
    """
    lookup = lookup or {}
    partition = [
        t for t in targets
        if konteks.matches(t, with_semester=tahap.target_semester, with_fase=tahap.target_fase)
    ]
    known = [tahap.key(t) for t in partition]

    planned, skipped = [], 0
    relevant = [s for s in sources if konteks.matches(s, with_semester=tahap.source_semester)]
    for source in sorted(relevant, key=lambda s: s.index_order or 0):
        candidate = tahap.build(source, konteks, lookup)
        key = tahap.key(candidate)
        if any(tahap.predicate.matches_key(key, k) for k in known):
            logger.debug("%s: skipping duplicate %r", tahap.name, key)
            skipped += 1
            continue
        planned.append(candidate)
        known.append(key)
    return planned, skipped


async def _write_all(store, collection: str, payloads: List[dict], hasil: HasilSinkron) -> List[Any]:
    # Ditulis satu per satu; kegagalan satu baris tidak menghentikan sisanya
    created = []
    for payload in payloads:
        try:
            created.append(await store.create(collection, payload))
            hasil.dibuat += 1
        except StoreWriteError:
            logger.error("Writing %s row %r failed, continuing", collection, payload.get("tujuan_pembelajaran"))
            hasil.gagal += 1
    return created


async def propagate(store, target: str, konteks: FilterKonteks) -> HasilSinkron:
    """Salin data tahap sebelumnya ke tahap `target` (atp, prota, atau promes)."""
    tahap = TAHAP[target]
    sources = [tahap.source_schema.model_validate(s) for s in await store.find(tahap.source, kelas=konteks.kelas)]
    targets = [tahap.target_schema.model_validate(t) for t in await store.find(tahap.target, kelas=konteks.kelas)]

    lookup: Dict[str, Any] = {}
    if tahap.source == "analisis":
        lookup["cps"] = {
            cp.id: CapaianPembelajaranSchema.model_validate(cp) for cp in await store.find("cps")
        }

    planned, skipped = plan_propagation(tahap, sources, targets, konteks, lookup)
    hasil = HasilSinkron(dilewati=skipped)
    await _write_all(store, tahap.target, planned, hasil)
    logger.info(
        "%s for %s kelas %s: %s created, %s skipped, %s failed",
        tahap.name, konteks.mapel, konteks.kelas, hasil.dibuat, hasil.dilewati, hasil.gagal,
    )
    return hasil


def plan_analisis(
    cp: CapaianPembelajaranSchema,
    results: Iterable[dict],
    existing: Iterable[AnalisisSchema],
    konteks: FilterKonteks,
    predicate: SimilarityPredicate = ExactTextMatch(),
) -> Tuple[List[dict], int]:
    """Satu CP menjadi banyak baris analisis; index_order melanjutkan nilai terbesar."""
    partition = [a for a in existing if konteks.matches(a, with_semester=False)]
    last_order = max((a.index_order or 0 for a in partition), default=0)
    known = [a.tujuan_pembelajaran for a in partition]

    planned, skipped = [], 0
    for res in results:
        tp = (res.get("tp") or res.get("tujuan_pembelajaran") or "").strip()
        if not tp:
            continue
        if any(predicate(tp, k) for k in known):
            skipped += 1
            continue
        last_order += 1
        planned.append({
            "cp_id": cp.id,
            "fase": konteks.fase.value,
            "kelas": konteks.kelas,
            "mapel": konteks.mapel,
            "materi": res.get("materi", ""),
            "sub_materi": res.get("sub_materi") or res.get("subMateri") or "",
            "tujuan_pembelajaran": tp,
            "index_order": last_order,
        })
        known.append(tp)
    return planned, skipped


async def add_analisis(store, cp: CapaianPembelajaranSchema, results: List[dict], konteks: FilterKonteks) -> HasilSinkron:
    existing = [AnalisisSchema.model_validate(a) for a in await store.find("analisis", kelas=konteks.kelas)]
    planned, skipped = plan_analisis(cp, results, existing, konteks)
    hasil = HasilSinkron(dilewati=skipped)
    await _write_all(store, "analisis", planned, hasil)
    return hasil


async def append_row(store, collection: str, konteks: FilterKonteks, defaults: dict) -> Any:
    """Baris manual baru di akhir urutan (index_order = max + 1)."""
    rows = [r for r in await store.find(collection, kelas=konteks.kelas) if konteks.matches(r)]
    next_order = max((r.index_order or 0 for r in rows), default=0) + 1
    has_semester = "semester" in store.model_for(collection).__table__.columns
    fields = konteks.as_fields(with_semester=has_semester)
    return await store.create(collection, {**defaults, **fields, "index_order": next_order})
