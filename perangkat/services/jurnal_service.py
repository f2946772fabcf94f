import logging
from datetime import date
from typing import Iterable, List, Optional, Tuple

from perangkat.config import Config
from perangkat.schemas.auth_schema import CurrentUser
from perangkat.schemas.jurnal_schema import JurnalSchema
from perangkat.schemas.kurikulum_schema import HasilSinkron, PromesSchema, RPMSchema, normalize_text
from perangkat.services.sync_service import ContainsTextMatch, ExactTextMatch, SimilarityPredicate
from perangkat.store import StoreWriteError
from perangkat.utils.time_utils import bulan_index, tahun_untuk_bulan

logger = logging.getLogger(__name__)

same_text = ExactTextMatch()


def is_duplicate(entry: JurnalSchema, existing: Iterable[JurnalSchema]) -> bool:
    """Satu jurnal per (tanggal, mapel, materi, kelas)."""
    return any(
        j.tanggal == entry.tanggal
        and same_text(j.mapel, entry.mapel)
        and same_text(j.materi, entry.materi)
        and str(j.kelas) == str(entry.kelas)
        for j in existing
    )


def find_matching_rpm(
    rpm: Iterable[RPMSchema], kelas: str, mapel: str, materi: str,
    predicate: SimilarityPredicate = ContainsTextMatch(),
) -> Optional[RPMSchema]:
    for r in rpm:
        if str(r.kelas) != str(kelas) or not same_text(r.mapel, mapel):
            continue
        if r.materi and predicate(materi, r.materi):
            return r
    return None


def visible_promes(promes: Iterable[PromesSchema], user: CurrentUser, kelas: str) -> List[PromesSchema]:
    """PROMES kelas ini yang sudah terjadwal dan termasuk mapel guru."""
    mapels = {normalize_text(m) for m in user.mapel_diampu}
    all_subjects = user.is_admin or user.teacher_type == "kelas"
    return [
        p for p in promes
        if str(p.kelas).strip() == str(kelas).strip()
        and (all_subjects or normalize_text(p.mapel) in mapels)
        and (p.bulan_pelaksanaan or "").strip()
    ]


def plan_journal_entries(
    promes: Iterable[PromesSchema],
    existing: Iterable[JurnalSchema],
    rpm: Iterable[RPMSchema],
    user: CurrentUser,
    kelas: str,
    tahun_pelajaran: str,
    meeting_label: Optional[str] = None,
) -> Tuple[List[JurnalSchema], int]:
    """
    Satu jurnal untuk setiap tanggal pelaksanaan PROMES.

    Jika satu baris punya lebih dari satu tanggal, materi diberi akhiran
    "(<label> N)" dengan N urut kronologis. praktik_pedagogis diambil dari
    RPM yang materinya cocok.
    """
    label = meeting_label or Config.MEETING_LABEL
    known = list(existing)
    rpm = list(rpm)
    planned, skipped = [], 0

    for p in visible_promes(promes, user, kelas):
        dates = sorted(p.tanggal_pelaksanaan, key=lambda d: d.sort_key)
        base_materi = p.materi_pokok + (f": {p.sub_materi}" if p.sub_materi else "")
        matching_rpm = find_matching_rpm(rpm, kelas, p.mapel, base_materi)

        for meeting, tanggal in enumerate(dates, start=1):
            month = bulan_index(tanggal.bulan)
            try:
                iso = date(tahun_untuk_bulan(tahun_pelajaran, month), month, tanggal.tanggal).isoformat()
            except ValueError:
                logger.warning("Promes %s has invalid date token %s", p.id, tanggal.token)
                continue
            materi = f"{base_materi} ({label} {meeting})" if len(dates) > 1 else base_materi
            entry = JurnalSchema(
                user_id=user.id,
                user_name=user.full_name,
                tahun_pelajaran=tahun_pelajaran,
                kelas=kelas,
                tanggal=iso,
                mapel=p.mapel,
                materi=materi,
                praktik_pedagogis=matching_rpm.praktik_pedagogis if matching_rpm else "",
            )
            if is_duplicate(entry, known):
                skipped += 1
                continue
            planned.append(entry)
            known.append(entry)
    return planned, skipped


async def sync_from_promes(store, user: CurrentUser, kelas: str, tahun_pelajaran: str) -> HasilSinkron:
    promes = [PromesSchema.model_validate(p) for p in await store.find("promes", kelas=kelas)]
    existing = [JurnalSchema.model_validate(j) for j in await store.find("jurnal_harian", kelas=kelas)]
    rpm = [RPMSchema.model_validate(r) for r in await store.find("rpm", kelas=kelas)]

    planned, skipped = plan_journal_entries(promes, existing, rpm, user, kelas, tahun_pelajaran)
    hasil = HasilSinkron(dilewati=skipped)
    for entry in planned:
        try:
            await store.create("jurnal_harian", entry.model_dump(exclude={"id"}))
            hasil.dibuat += 1
        except StoreWriteError:
            logger.error("Writing journal %s %s failed, continuing", entry.tanggal, entry.materi)
            hasil.gagal += 1
    logger.info("Journal sync kelas %s: %s created, %s already present", kelas, hasil.dibuat, hasil.dilewati)
    return hasil


async def create_jurnal(store, entry: JurnalSchema) -> Tuple[JurnalSchema, bool]:
    """Simpan jurnal jika belum ada; kembalikan (jurnal, dibuat)."""
    existing = [JurnalSchema.model_validate(j) for j in await store.find("jurnal_harian", kelas=entry.kelas, tanggal=entry.tanggal)]
    for j in existing:
        if is_duplicate(entry, [j]):
            return j, False
    row = await store.create("jurnal_harian", entry.model_dump(exclude={"id"}))
    return JurnalSchema.model_validate(row), True


def sort_jurnal(entries: Iterable[JurnalSchema]) -> List[JurnalSchema]:
    return sorted(entries, key=lambda j: (j.tanggal, j.mapel))
