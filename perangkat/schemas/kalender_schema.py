from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, computed_field, field_validator

from perangkat.utils.time_utils import BULAN, HARI_SEKOLAH

EventType = Literal["libur", "ujian", "kegiatan", "penting"]


class EventKalenderSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    date: str
    title: str
    type: EventType = "libur"
    description: Optional[str] = ""

    @field_validator("date")
    @classmethod
    def _iso_date(cls, value: str) -> str:
        return date.fromisoformat(value.strip()).isoformat()

    @property
    def tanggal(self) -> date:
        return date.fromisoformat(self.date)


class EventKalenderUpdate(BaseModel):
    date: Optional[str] = None
    title: Optional[str] = None
    type: Optional[EventType] = None
    description: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _iso_date(cls, value: Optional[str]) -> Optional[str]:
        return date.fromisoformat(value.strip()).isoformat() if value else value


class JadwalSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    kelas: str
    hari: str
    jam_ke: int
    mapel: str


class JadwalSlotRequest(BaseModel):
    kelas: str
    hari: str
    jam_ke: int
    mapel: Optional[str] = "" # kosong = hapus slot

    @field_validator("hari")
    @classmethod
    def _school_day(cls, value: str) -> str:
        if value not in HARI_SEKOLAH:
            raise ValueError(f"Hari harus salah satu dari {', '.join(HARI_SEKOLAH)}")
        return value


class HariEfektifSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    kelas: str
    semester: int
    bulan: str
    jumlah_minggu: int = 4
    minggu_tidak_efektif: int = 0
    keterangan: str = ""

    @field_validator("bulan")
    @classmethod
    def _known_month(cls, value: str) -> str:
        if value not in BULAN:
            raise ValueError(f"Bulan tidak dikenal: {value!r}")
        return value

    @computed_field
    @property
    def minggu_efektif(self) -> int:
        return max(0, (self.jumlah_minggu or 0) - (self.minggu_tidak_efektif or 0))


class HariEfektifUpdate(BaseModel):
    kelas: str
    semester: int
    bulan: str
    jumlah_minggu: Optional[int] = None
    minggu_tidak_efektif: Optional[int] = None
    keterangan: Optional[str] = None


class RincianBulan(BaseModel):
    bulan: str
    jumlah_minggu: int
    minggu_tidak_efektif: int
    minggu_efektif: int
    jp_efektif: int
    keterangan: str


class RingkasanHariEfektif(BaseModel):
    kelas: str
    semester: int
    mapel: Optional[str] = None
    jp_per_minggu: int
    rincian: List[RincianBulan]
    total_minggu: int
    total_tidak_efektif: int
    total_efektif: int
    total_jp: int


class AcademicYearSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    year: str
    is_active: bool = False
