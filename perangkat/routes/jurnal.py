from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from perangkat.routes.kalender import resolve_tahun_pelajaran
from perangkat.schemas.auth_schema import CurrentUser
from perangkat.schemas.jurnal_schema import JurnalSchema, SyncJurnalRequest
from perangkat.schemas.kurikulum_schema import RPMSchema
from perangkat.security import ensure_class_access, get_current_user
from perangkat.services import jurnal_service
from perangkat.services.assistant_service import AssistantService
from perangkat.store import DocumentStore, get_store

router = APIRouter(prefix="/api/jurnal", tags=["Jurnal"])


class JurnalUpdate(BaseModel):
    tanggal: Optional[str] = None
    mapel: Optional[str] = None
    materi: Optional[str] = None
    detail_kegiatan: Optional[str] = None
    praktik_pedagogis: Optional[str] = None
    absen_siswa: Optional[str] = None
    catatan_kejadian: Optional[str] = None


@router.get("", response_model=List[JurnalSchema])
async def list_jurnal(
    kelas: str,
    tahun_pelajaran: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
    user: CurrentUser = Depends(get_current_user),
):
    ensure_class_access(user, kelas)
    tahun = await resolve_tahun_pelajaran(store, tahun_pelajaran)
    rows = [JurnalSchema.model_validate(j) for j in await store.find("jurnal_harian", kelas=kelas, tahun_pelajaran=tahun)]
    return jurnal_service.sort_jurnal(rows)

@router.post("")
async def create_jurnal(entry: JurnalSchema, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    ensure_class_access(user, entry.kelas)
    entry = entry.model_copy(update={"user_id": user.id, "user_name": entry.user_name or user.full_name})
    jurnal, created = await jurnal_service.create_jurnal(store, entry)
    if not created:
        return {"message": "Jurnal untuk tanggal dan materi ini sudah ada", "created": False, "jurnal": jurnal}
    return {"message": "Jurnal disimpan", "created": True, "jurnal": jurnal}

@router.post("/sync-from-promes")
async def sync_from_promes(req: SyncJurnalRequest, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    ensure_class_access(user, req.kelas)
    tahun = await resolve_tahun_pelajaran(store, req.tahun_pelajaran)
    hasil = await jurnal_service.sync_from_promes(store, user, req.kelas, tahun)
    return hasil.as_response()

@router.patch("/{jurnal_id}", response_model=JurnalSchema)
async def update_jurnal(jurnal_id: int, changes: JurnalUpdate, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    current = JurnalSchema.model_validate(await store.get("jurnal_harian", jurnal_id))
    ensure_class_access(user, current.kelas)
    row = await store.update("jurnal_harian", jurnal_id, changes.model_dump(exclude_unset=True))
    return JurnalSchema.model_validate(row)

@router.delete("/{jurnal_id}")
async def delete_jurnal(jurnal_id: int, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    current = JurnalSchema.model_validate(await store.get("jurnal_harian", jurnal_id))
    ensure_class_access(user, current.kelas)
    if not user.is_admin and current.user_id not in (None, user.id):
        raise HTTPException(status_code=403, detail="Jurnal milik guru lain")
    await store.delete("jurnal_harian", jurnal_id)
    return {"message": "Jurnal dihapus"}

@router.post("/{jurnal_id}/narasi", response_model=JurnalSchema)
async def generate_narasi(jurnal_id: int, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    jurnal = JurnalSchema.model_validate(await store.get("jurnal_harian", jurnal_id))
    ensure_class_access(user, jurnal.kelas)
    rpm = [RPMSchema.model_validate(r) for r in await store.find("rpm", kelas=jurnal.kelas)]
    matching = jurnal_service.find_matching_rpm(rpm, jurnal.kelas, jurnal.mapel, jurnal.materi)
    changes = await AssistantService.draft_jurnal(jurnal, matching)
    return JurnalSchema.model_validate(await store.update("jurnal_harian", jurnal_id, changes))
