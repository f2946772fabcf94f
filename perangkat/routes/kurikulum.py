from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from perangkat.routes.kalender import resolve_tahun_pelajaran
from perangkat.schemas.auth_schema import CurrentUser
from perangkat.schemas.kurikulum_schema import (
    AnalisisSchema, ATPSchema, CapaianPembelajaranSchema, FilterKonteks, LKPDSchema,
    PromesSchema, ProtaSchema, RPMSchema, TambahBarisRequest,
)
from perangkat.security import ensure_class_access, get_current_user
from perangkat.services import scheduler_service, sync_service
from perangkat.services.assistant_service import AssistantService
from perangkat.services.perangkat_service import lkpd_from_rpm, rpm_from_atp
from perangkat.store import DocumentStore, get_store

router = APIRouter(prefix="/api/kurikulum", tags=["Kurikulum"])

SCHEMAS = {
    "cps": CapaianPembelajaranSchema,
    "analisis": AnalisisSchema,
    "atp": ATPSchema,
    "prota": ProtaSchema,
    "promes": PromesSchema,
    "rpm": RPMSchema,
    "lkpd": LKPDSchema,
}

# Baris asesmen sumatif di akhir PROMES
ASESMEN_DEFAULTS = {
    "materi_pokok": "ASESMEN SUMATIF",
    "tujuan_pembelajaran": "Evaluasi pencapaian kompetensi",
    "alokasi_waktu": "2",
    "is_asesmen": True,
}


def _schema_for(collection: str):
    if collection not in SCHEMAS:
        raise HTTPException(status_code=404, detail=f"Tahap tidak dikenal: {collection}")
    return SCHEMAS[collection]

def _konteks(**fields) -> FilterKonteks:
    try:
        return FilterKonteks(**fields)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e.errors()[0]["msg"]))

def _check_access(user: CurrentUser, item: Any):
    kelas = getattr(item, "kelas", None)
    if kelas is not None:
        ensure_class_access(user, kelas)


# --- Sinkronisasi antar tahap ---

@router.post("/sync/{target}")
async def sync_tahap(target: str, konteks: FilterKonteks, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    if target not in sync_service.TAHAP:
        raise HTTPException(status_code=404, detail=f"Tidak ada sinkronisasi ke {target}")
    if target == "promes" and konteks.semester is None:
        raise HTTPException(status_code=400, detail="Semester wajib dipilih untuk PROMES")
    ensure_class_access(user, konteks.kelas)
    hasil = await sync_service.propagate(store, target, konteks)
    return hasil.as_response()

@router.post("/promes/schedule")
async def schedule_promes(
    konteks: FilterKonteks,
    tahun_pelajaran: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
    user: CurrentUser = Depends(get_current_user),
):
    if konteks.semester is None:
        raise HTTPException(status_code=400, detail="Semester wajib dipilih untuk PROMES")
    ensure_class_access(user, konteks.kelas)
    tahun = await resolve_tahun_pelajaran(store, tahun_pelajaran)
    hasil = await scheduler_service.schedule_promes(store, konteks, tahun)
    return hasil.as_response()


# --- Draft dengan AI ---

@router.post("/analisis/generate/{cp_id}")
async def generate_analisis(cp_id: int, kelas: str, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    ensure_class_access(user, kelas)
    cp = CapaianPembelajaranSchema.model_validate(await store.get("cps", cp_id))
    konteks = _konteks(kelas=kelas, mapel=cp.mapel)
    if konteks.fase != cp.fase:
        raise HTTPException(status_code=400, detail=f"Kelas {kelas} tidak termasuk {cp.fase.value}")

    results = await AssistantService.analyze_cp(cp, kelas)
    hasil = await sync_service.add_analisis(store, cp, results, konteks)
    return hasil.as_response()

@router.post("/rpm/from-atp/{atp_id}", response_model=RPMSchema)
async def create_rpm_from_atp(atp_id: int, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    atp = ATPSchema.model_validate(await store.get("atp", atp_id))
    ensure_class_access(user, atp.kelas)

    existing = await store.find("rpm", atp_id=atp.id)
    if existing:
        return RPMSchema.model_validate(existing[0])

    promes = [PromesSchema.model_validate(p) for p in await store.find("promes", kelas=atp.kelas)]
    rpm = rpm_from_atp(atp, promes)
    row = await store.create("rpm", rpm.model_dump(mode="json", exclude={"id"}))
    return RPMSchema.model_validate(row)

@router.post("/rpm/{rpm_id}/generate", response_model=RPMSchema)
async def generate_rpm(rpm_id: int, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    rpm = RPMSchema.model_validate(await store.get("rpm", rpm_id))
    ensure_class_access(user, rpm.kelas)
    changes = await AssistantService.draft_rpm(rpm)
    return RPMSchema.model_validate(await store.update("rpm", rpm_id, changes))

@router.post("/lkpd/from-rpm/{rpm_id}", response_model=LKPDSchema)
async def create_lkpd_from_rpm(rpm_id: int, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    rpm = RPMSchema.model_validate(await store.get("rpm", rpm_id))
    ensure_class_access(user, rpm.kelas)

    existing = await store.find("lkpd", rpm_id=rpm.id)
    if existing:
        return LKPDSchema.model_validate(existing[0])
    row = await store.create("lkpd", lkpd_from_rpm(rpm))
    return LKPDSchema.model_validate(row)

@router.post("/lkpd/{lkpd_id}/generate", response_model=LKPDSchema)
async def generate_lkpd(lkpd_id: int, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    lkpd = LKPDSchema.model_validate(await store.get("lkpd", lkpd_id))
    ensure_class_access(user, lkpd.kelas)
    rpm = None
    if lkpd.rpm_id:
        rows = await store.find("rpm", id=lkpd.rpm_id)
        rpm = RPMSchema.model_validate(rows[0]) if rows else None
    changes = await AssistantService.draft_lkpd(lkpd, rpm)
    return LKPDSchema.model_validate(await store.update("lkpd", lkpd_id, changes))


# --- CRUD per tahap ---

@router.get("/{collection}")
async def list_items(
    collection: str,
    kelas: Optional[str] = None,
    mapel: Optional[str] = None,
    fase: Optional[str] = None,
    semester: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
    user: CurrentUser = Depends(get_current_user),
):
    schema = _schema_for(collection)
    columns = store.model_for(collection).__table__.columns
    if kelas is not None:
        ensure_class_access(user, kelas)
    elif "kelas" in columns and user.is_class_locked:
        kelas = user.kelas

    filters = {
        name: value
        for name, value in {"kelas": kelas, "fase": fase, "semester": semester}.items()
        if value is not None and name in columns
    }
    rows = [schema.model_validate(r) for r in await store.find(collection, **filters)]
    if mapel:
        rows = [r for r in rows if r.mapel.strip().lower() == mapel.strip().lower()]
    if "index_order" in columns:
        rows.sort(key=lambda r: r.index_order or 0)
    return rows

@router.post("/{collection}")
async def create_item(collection: str, data: Dict[str, Any] = Body(...), store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    schema = _schema_for(collection)
    try:
        item = schema.model_validate(data)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False))
    _check_access(user, item)
    row = await store.create(collection, item.model_dump(mode="json", exclude={"id"}))
    return schema.model_validate(row)

@router.post("/{collection}/tambah")
async def add_row(collection: str, req: TambahBarisRequest, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    schema = _schema_for(collection)
    if collection == "cps":
        raise HTTPException(status_code=400, detail="CP ditambahkan lewat data master, bukan baris manual")
    ensure_class_access(user, req.kelas)
    konteks = _konteks(**req.model_dump(exclude={"asesmen"}))

    defaults: Dict[str, Any] = {}
    if collection == "promes":
        if konteks.semester is None:
            raise HTTPException(status_code=400, detail="Semester wajib dipilih untuk PROMES")
        if req.asesmen:
            defaults = dict(ASESMEN_DEFAULTS)
    row = await sync_service.append_row(store, collection, konteks, defaults)
    return schema.model_validate(row)

@router.patch("/{collection}/{doc_id}")
async def update_item(
    collection: str,
    doc_id: int,
    changes: Dict[str, Any] = Body(...),
    store: DocumentStore = Depends(get_store),
    user: CurrentUser = Depends(get_current_user),
):
    schema = _schema_for(collection)
    current = schema.model_validate(await store.get(collection, doc_id))
    _check_access(user, current)
    try:
        merged = schema.model_validate({**current.model_dump(), **changes, "id": doc_id})
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False))
    _check_access(user, merged)

    payload = merged.model_dump(mode="json", include=set(changes) - {"id"})
    return schema.model_validate(await store.update(collection, doc_id, payload))

@router.delete("/{collection}/{doc_id}")
async def delete_item(collection: str, doc_id: int, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    schema = _schema_for(collection)
    _check_access(user, schema.model_validate(await store.get(collection, doc_id)))
    await store.delete(collection, doc_id)
    return {"message": "Data dihapus"}
