import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from perangkat.database import get_db
from perangkat.models.curriculum import (
    CapaianPembelajaran, AnalisisCP, ATPItem, ProtaItem, PromesItem, RPMItem, LKPDItem,
)
from perangkat.models.kalender import EventKalender, JadwalItem, HariEfektif, AcademicYear
from perangkat.models.jurnal import JurnalHarian
from perangkat.models.evaluasi import KisiKisi, Siswa, Nilai
from perangkat.models.sekolah import PengaturanSekolah

logger = logging.getLogger(__name__)

# Nama koleksi -> model
COLLECTIONS = {
    "cps": CapaianPembelajaran,
    "analisis": AnalisisCP,
    "atp": ATPItem,
    "prota": ProtaItem,
    "promes": PromesItem,
    "rpm": RPMItem,
    "lkpd": LKPDItem,
    "jurnal_harian": JurnalHarian,
    "kalender_events": EventKalender,
    "jadwal_pelajaran": JadwalItem,
    "hari_efektif": HariEfektif,
    "academic_years": AcademicYear,
    "kisikisi": KisiKisi,
    "siswa": Siswa,
    "nilai": Nilai,
    "settings": PengaturanSekolah,
}

Listener = Callable[[List[dict]], Union[None, Awaitable[None]]]


class UnknownCollection(KeyError):
    pass


class DocumentNotFound(LookupError):
    def __init__(self, collection: str, doc_id: Any):
        super().__init__(f"{collection}/{doc_id} tidak ditemukan")
        self.collection = collection
        self.doc_id = doc_id


class InvalidField(ValueError):
    pass


class StoreWriteError(RuntimeError):
    """Database menolak create/update/delete."""


class ChangeFeed:
    """Daftar pendengar per koleksi. Setiap penulisan mengirim isi koleksi terbaru."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, collection: str, callback: Listener) -> Callable[[], None]:
        if collection not in COLLECTIONS:
            raise UnknownCollection(collection)
        self._listeners[collection].append(callback)

        def unsubscribe():
            if callback in self._listeners[collection]:
                self._listeners[collection].remove(callback)

        return unsubscribe

    def has_listeners(self, collection: str) -> bool:
        return bool(self._listeners.get(collection))

    async def publish(self, collection: str, docs: List[dict]):
        for callback in list(self._listeners.get(collection, [])):
            try:
                result = callback(docs)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Listener for %s failed", collection)


change_feed = ChangeFeed()


class DocumentStore:
    """Akses baca/tulis per dokumen di atas AsyncSession. Tidak ada transaksi lintas dokumen."""

    def __init__(self, session: AsyncSession, feed: ChangeFeed = change_feed):
        self.session = session
        self.feed = feed

    @staticmethod
    def model_for(collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise UnknownCollection(collection)

    async def find(self, collection: str, order_by: Optional[str] = None, **filters) -> list:
        model = self.model_for(collection)
        stmt = select(model)
        for field, value in filters.items():
            stmt = stmt.where(getattr(model, field) == value)
        stmt = stmt.order_by(getattr(model, order_by or "id"))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get(self, collection: str, doc_id: int):
        model = self.model_for(collection)
        row = await self.session.get(model, doc_id)
        if row is None:
            raise DocumentNotFound(collection, doc_id)
        return row

    def _check_fields(self, collection: str, data: dict):
        columns = self.model_for(collection).__table__.columns.keys()
        unknown = set(data) - set(columns)
        if unknown:
            raise InvalidField(f"Field tidak dikenal untuk {collection}: {', '.join(sorted(unknown))}")

    async def create(self, collection: str, data: dict):
        data = {k: v for k, v in data.items() if k != "id"}
        self._check_fields(collection, data)
        row = self.model_for(collection)(**data)
        self.session.add(row)
        await self._commit(collection, "create")
        await self.session.refresh(row)
        await self._notify(collection)
        return row

    async def update(self, collection: str, doc_id: int, partial: dict):
        partial = {k: v for k, v in partial.items() if k != "id"}
        self._check_fields(collection, partial)
        row = await self.get(collection, doc_id)
        for field, value in partial.items():
            setattr(row, field, value)
        await self._commit(collection, "update", doc_id)
        await self._notify(collection)
        return row

    async def delete(self, collection: str, doc_id: int):
        row = await self.get(collection, doc_id)
        await self.session.delete(row)
        await self._commit(collection, "delete", doc_id)
        await self._notify(collection)

    def subscribe(self, collection: str, callback: Listener) -> Callable[[], None]:
        return self.feed.subscribe(collection, callback)

    async def _commit(self, collection: str, action: str, doc_id: Any = None):
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Store %s on %s/%s failed: %s", action, collection, doc_id, e)
            raise StoreWriteError(f"Gagal {action} {collection}") from e

    async def _notify(self, collection: str):
        if not self.feed.has_listeners(collection):
            return
        rows = await self.find(collection)
        await self.feed.publish(collection, [r.as_dict() for r in rows])


async def get_store(db: AsyncSession = Depends(get_db)) -> DocumentStore:
    return DocumentStore(db)
