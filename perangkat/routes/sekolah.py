from fastapi import APIRouter, Depends

from perangkat.schemas.auth_schema import CurrentUser
from perangkat.schemas.evaluasi_schema import PengaturanSekolahSchema
from perangkat.security import get_current_user, require_admin
from perangkat.store import DocumentStore, get_store

router = APIRouter(prefix="/api/sekolah", tags=["Sekolah"])


async def load_pengaturan(store: DocumentStore) -> PengaturanSekolahSchema:
    rows = await store.find("settings", order_by="id")
    if not rows:
        return PengaturanSekolahSchema()
    return PengaturanSekolahSchema.model_validate(rows[0])

@router.get("/pengaturan", response_model=PengaturanSekolahSchema)
async def get_pengaturan(store: DocumentStore = Depends(get_store), _: CurrentUser = Depends(get_current_user)):
    return await load_pengaturan(store)

@router.put("/pengaturan", response_model=PengaturanSekolahSchema)
async def save_pengaturan(req: PengaturanSekolahSchema, store: DocumentStore = Depends(get_store), _: CurrentUser = Depends(require_admin)):
    # Hanya satu baris; simpan ulang menimpa baris pertama
    data = req.model_dump(exclude={"id"})
    current = await load_pengaturan(store)
    if current.id is None:
        row = await store.create("settings", data)
    else:
        row = await store.update("settings", current.id, data)
    return PengaturanSekolahSchema.model_validate(row)
