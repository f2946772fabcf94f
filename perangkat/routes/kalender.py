from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from perangkat.config import Config
from perangkat.schemas.auth_schema import CurrentUser
from perangkat.schemas.kalender_schema import (
    AcademicYearSchema, EventKalenderSchema, EventKalenderUpdate, HariEfektifSchema,
    HariEfektifUpdate, JadwalSchema, JadwalSlotRequest, RingkasanHariEfektif,
)
from perangkat.security import ensure_class_access, get_current_user, require_admin
from perangkat.services import hari_efektif_service
from perangkat.store import DocumentStore, get_store
from perangkat.utils.time_utils import BULAN, bulan_index, tahun_pelajaran_berjalan, tahun_untuk_bulan

router = APIRouter(prefix="/api/kalender", tags=["Kalender"])


async def resolve_tahun_pelajaran(store: DocumentStore, explicit: Optional[str] = None) -> str:
    if explicit:
        return explicit
    years = await store.find("academic_years")
    active = next((y for y in years if y.is_active), None)
    if active:
        return active.year
    if years:
        return years[0].year
    return Config.DEFAULT_ACADEMIC_YEAR or tahun_pelajaran_berjalan()


# --- Event kalender ---

@router.get("/events", response_model=list[EventKalenderSchema])
async def list_events(
    bulan: Optional[str] = None,
    tahun_pelajaran: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
    _: CurrentUser = Depends(get_current_user),
):
    events = [EventKalenderSchema.model_validate(e) for e in await store.find("kalender_events", order_by="date")]
    if bulan:
        if bulan not in BULAN:
            raise HTTPException(status_code=400, detail=f"Bulan tidak dikenal: {bulan}")
        month = bulan_index(bulan)
        year = tahun_untuk_bulan(await resolve_tahun_pelajaran(store, tahun_pelajaran), month)
        events = [e for e in events if e.date.startswith(f"{year}-{month:02d}-")]
    return events

@router.post("/events", response_model=EventKalenderSchema)
async def create_event(event: EventKalenderSchema, store: DocumentStore = Depends(get_store), _: CurrentUser = Depends(get_current_user)):
    row = await store.create("kalender_events", event.model_dump(exclude={"id"}))
    return EventKalenderSchema.model_validate(row)

@router.patch("/events/{event_id}", response_model=EventKalenderSchema)
async def update_event(event_id: int, changes: EventKalenderUpdate, store: DocumentStore = Depends(get_store), _: CurrentUser = Depends(get_current_user)):
    row = await store.update("kalender_events", event_id, changes.model_dump(exclude_unset=True))
    return EventKalenderSchema.model_validate(row)

@router.delete("/events/{event_id}")
async def delete_event(event_id: int, store: DocumentStore = Depends(get_store), _: CurrentUser = Depends(get_current_user)):
    await store.delete("kalender_events", event_id)
    return {"message": "Event dihapus"}


# --- Jadwal pelajaran ---

@router.get("/jadwal", response_model=list[JadwalSchema])
async def list_jadwal(kelas: str, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    ensure_class_access(user, kelas)
    return [JadwalSchema.model_validate(j) for j in await store.find("jadwal_pelajaran", kelas=kelas, order_by="jam_ke")]

@router.put("/jadwal")
async def set_jadwal(req: JadwalSlotRequest, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    ensure_class_access(user, req.kelas)
    existing = await store.find("jadwal_pelajaran", kelas=req.kelas, hari=req.hari, jam_ke=req.jam_ke)
    mapel = (req.mapel or "").strip()
    if not mapel:
        if existing:
            await store.delete("jadwal_pelajaran", existing[0].id)
        return {"message": "Slot dikosongkan", "slot": None}
    if existing:
        row = await store.update("jadwal_pelajaran", existing[0].id, {"mapel": mapel})
    else:
        row = await store.create("jadwal_pelajaran", {"kelas": req.kelas, "hari": req.hari, "jam_ke": req.jam_ke, "mapel": mapel})
    return {"message": "Jadwal disimpan", "slot": JadwalSchema.model_validate(row)}


# --- Hari efektif ---

@router.get("/hari-efektif", response_model=RingkasanHariEfektif)
async def get_hari_efektif(
    kelas: str,
    semester: int,
    mapel: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
    user: CurrentUser = Depends(get_current_user),
):
    ensure_class_access(user, kelas)
    rows = [HariEfektifSchema.model_validate(r) for r in await store.find("hari_efektif", kelas=kelas, semester=semester)]
    records = hari_efektif_service.fill_semester(rows, kelas, semester)
    jp_minggu = 0
    if mapel:
        jadwal = await store.find("jadwal_pelajaran", kelas=kelas)
        jp_minggu = hari_efektif_service.jp_per_minggu(jadwal, kelas, mapel)
    return hari_efektif_service.summarize(records, kelas, semester, jp_minggu, mapel)

@router.put("/hari-efektif", response_model=HariEfektifSchema)
async def update_hari_efektif(req: HariEfektifUpdate, store: DocumentStore = Depends(get_store), user: CurrentUser = Depends(get_current_user)):
    ensure_class_access(user, req.kelas)
    if req.bulan not in BULAN:
        raise HTTPException(status_code=400, detail=f"Bulan tidak dikenal: {req.bulan}")
    changes = req.model_dump(include={"jumlah_minggu", "minggu_tidak_efektif", "keterangan"}, exclude_none=True)
    return await hari_efektif_service.update_month(store, req.kelas, req.semester, req.bulan, changes)

@router.post("/hari-efektif/sync", response_model=list[HariEfektifSchema])
async def sync_hari_efektif(
    kelas: str,
    semester: int,
    tahun_pelajaran: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
    user: CurrentUser = Depends(get_current_user),
):
    ensure_class_access(user, kelas)
    tahun = await resolve_tahun_pelajaran(store, tahun_pelajaran)
    return await hari_efektif_service.sync_from_calendar(store, kelas, semester, tahun)


# --- Tahun pelajaran ---

@router.get("/tahun-pelajaran", response_model=list[AcademicYearSchema])
async def list_tahun(store: DocumentStore = Depends(get_store), _: CurrentUser = Depends(get_current_user)):
    return [AcademicYearSchema.model_validate(y) for y in await store.find("academic_years", order_by="year")]

@router.post("/tahun-pelajaran", response_model=AcademicYearSchema)
async def create_tahun(req: AcademicYearSchema, store: DocumentStore = Depends(get_store), _: CurrentUser = Depends(require_admin)):
    row = await store.create("academic_years", {"year": req.year, "is_active": False})
    if req.is_active:
        row = await _activate(store, row.id)
    return AcademicYearSchema.model_validate(row)

@router.post("/tahun-pelajaran/{year_id}/aktif", response_model=AcademicYearSchema)
async def activate_tahun(year_id: int, store: DocumentStore = Depends(get_store), _: CurrentUser = Depends(require_admin)):
    return AcademicYearSchema.model_validate(await _activate(store, year_id))

async def _activate(store: DocumentStore, year_id: int):
    target = await store.get("academic_years", year_id)
    for y in await store.find("academic_years", is_active=True):
        if y.id != year_id:
            await store.update("academic_years", y.id, {"is_active": False})
    return await store.update("academic_years", target.id, {"is_active": True})
