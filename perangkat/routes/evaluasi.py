from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from perangkat.schemas.auth_schema import CurrentUser
from perangkat.schemas.evaluasi_schema import (
    KisiKisiSchema, KisiKisiSyncRequest, KisiKisiUpdate, NilaiSchema, RekapNilaiSiswa, SiswaSchema,
)
from perangkat.schemas.kurikulum_schema import ATPSchema, FilterKonteks
from perangkat.security import ensure_class_access, get_current_user
from perangkat.services import evaluasi_service
from perangkat.services.assistant_service import AssistantService
from perangkat.store import DocumentStore, get_store

router = APIRouter(prefix="/api/evaluasi", tags=["Evaluasi"])


# --- Daftar siswa ---

@router.get("/siswa", response_model=List[SiswaSchema])
async def list_siswa(kelas: str, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    ensure_class_access(user, kelas)
    rows = [SiswaSchema.model_validate(s) for s in await store.find("siswa", kelas=kelas)]
    return evaluasi_service.sort_siswa(rows)

@router.post("/siswa", response_model=SiswaSchema)
async def create_siswa(siswa: SiswaSchema, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    ensure_class_access(user, siswa.kelas)
    data = siswa.model_dump(exclude={"id"})
    data["nama"] = data["nama"].strip().upper()
    return SiswaSchema.model_validate(await store.create("siswa", data))

@router.patch("/siswa/{siswa_id}", response_model=SiswaSchema)
async def update_siswa(siswa_id: int, siswa: SiswaSchema, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    current = SiswaSchema.model_validate(await store.get("siswa", siswa_id))
    ensure_class_access(user, current.kelas)
    ensure_class_access(user, siswa.kelas)
    data = siswa.model_dump(exclude={"id"})
    data["nama"] = data["nama"].strip().upper()
    return SiswaSchema.model_validate(await store.update("siswa", siswa_id, data))

@router.delete("/siswa/{siswa_id}")
async def delete_siswa(siswa_id: int, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    current = SiswaSchema.model_validate(await store.get("siswa", siswa_id))
    ensure_class_access(user, current.kelas)
    for row in await store.find("nilai", siswa_id=siswa_id):
        await store.delete("nilai", row.id)
    await store.delete("siswa", siswa_id)
    return {"message": "Siswa dihapus"}


# --- Kisi-kisi asesmen ---

@router.get("/kisikisi", response_model=List[KisiKisiSchema])
async def list_kisikisi(
    kelas: str,
    mapel: Optional[str] = None,
    semester: Optional[str] = None,
    nama_asesmen: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
    user: CurrentUser = Depends(get_current_user),
):
    ensure_class_access(user, kelas)
    filters = {k: v for k, v in {"semester": semester, "nama_asesmen": nama_asesmen}.items() if v is not None}
    rows = [KisiKisiSchema.model_validate(k) for k in await store.find("kisikisi", kelas=kelas, **filters)]
    if mapel:
        rows = [r for r in rows if r.mapel.strip().lower() == mapel.strip().lower()]
    return sorted(rows, key=lambda r: (r.nama_asesmen, r.nomor_soal))

@router.post("/kisikisi/sync")
async def sync_kisikisi(req: KisiKisiSyncRequest, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    if req.semester is None:
        raise HTTPException(status_code=400, detail="Semester wajib dipilih untuk kisi-kisi")
    if not req.nama_asesmen.strip():
        raise HTTPException(status_code=400, detail="Nama asesmen wajib diisi")
    ensure_class_access(user, req.kelas)
    konteks = FilterKonteks(**req.model_dump(exclude={"nama_asesmen"}))
    hasil = await evaluasi_service.sync_kisikisi(store, konteks, req.nama_asesmen.strip())
    return hasil.as_response()

@router.patch("/kisikisi/{kisi_id}", response_model=KisiKisiSchema)
async def update_kisikisi(kisi_id: int, changes: KisiKisiUpdate, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    current = KisiKisiSchema.model_validate(await store.get("kisikisi", kisi_id))
    ensure_class_access(user, current.kelas)
    if changes.atp_id:
        atp = ATPSchema.model_validate(await store.get("atp", changes.atp_id))
        ensure_class_access(user, atp.kelas)
    return KisiKisiSchema.model_validate(await evaluasi_service.update_kisikisi(store, kisi_id, changes))

@router.post("/kisikisi/{kisi_id}/generate", response_model=KisiKisiSchema)
async def generate_soal(kisi_id: int, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    kisi = KisiKisiSchema.model_validate(await store.get("kisikisi", kisi_id))
    ensure_class_access(user, kisi.kelas)
    changes = await AssistantService.draft_soal(kisi)
    return KisiKisiSchema.model_validate(await store.update("kisikisi", kisi_id, changes))

@router.delete("/kisikisi/{kisi_id}")
async def delete_kisikisi(kisi_id: int, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    current = KisiKisiSchema.model_validate(await store.get("kisikisi", kisi_id))
    ensure_class_access(user, current.kelas)
    await store.delete("kisikisi", kisi_id)
    return {"message": "Data dihapus"}


# --- Nilai per TP ---

@router.get("/nilai", response_model=List[RekapNilaiSiswa])
async def rekap_nilai(
    kelas: str,
    mapel: str,
    store: DocumentStore = Depends(get_store),
    user: CurrentUser = Depends(get_current_user),
):
    ensure_class_access(user, kelas)
    try:
        konteks = FilterKonteks(kelas=kelas, mapel=mapel)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e.errors()[0]["msg"]))
    siswa = [SiswaSchema.model_validate(s) for s in await store.find("siswa", kelas=kelas)]
    atp = [ATPSchema.model_validate(a) for a in await store.find("atp", kelas=kelas)]
    ids = {s.id for s in siswa}
    nilai = [NilaiSchema.model_validate(n) for n in await store.find("nilai") if n.siswa_id in ids]
    return evaluasi_service.rekap_nilai(siswa, atp, nilai, konteks)

@router.post("/nilai/sync")
async def sync_nilai(konteks: FilterKonteks, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    ensure_class_access(user, konteks.kelas)
    hasil = await evaluasi_service.sync_nilai(store, konteks)
    return hasil.as_response()

@router.put("/nilai", response_model=NilaiSchema)
async def set_nilai(entry: NilaiSchema, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    siswa = SiswaSchema.model_validate(await store.get("siswa", entry.siswa_id))
    ensure_class_access(user, siswa.kelas)
    atp = ATPSchema.model_validate(await store.get("atp", entry.atp_id))
    if str(atp.kelas) != str(siswa.kelas):
        raise HTTPException(status_code=400, detail="TP bukan milik kelas siswa ini")
    return await evaluasi_service.set_nilai(store, entry.model_copy(update={"mapel": entry.mapel or atp.mapel}))
