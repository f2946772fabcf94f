from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from perangkat.schemas.kurikulum_schema import FilterKonteks

Kompetensi = Literal["Pengetahuan dan Pemahaman", "Aplikasi", "Penalaran"]
BentukSoal = Literal["Pilihan Ganda", "Pilihan Ganda Kompleks", "Menjodohkan", "Isian", "Uraian"]


class KisiKisiSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    atp_id: Optional[int] = None
    fase: str
    kelas: str
    semester: str
    mapel: str
    nama_asesmen: str
    elemen: str = ""
    cp: str = ""
    kompetensi: Kompetensi = "Pengetahuan dan Pemahaman"
    tujuan_pembelajaran: str = ""
    indikator_soal: str = ""
    jenis: Literal["Tes", "Non Tes"] = "Tes"
    bentuk_soal: BentukSoal = "Pilihan Ganda"
    stimulus: str = ""
    soal: str = ""
    kunci_jawaban: str = ""
    nomor_soal: int = 1


class KisiKisiUpdate(BaseModel):
    atp_id: Optional[int] = None
    kompetensi: Optional[Kompetensi] = None
    indikator_soal: Optional[str] = None
    jenis: Optional[Literal["Tes", "Non Tes"]] = None
    bentuk_soal: Optional[BentukSoal] = None
    stimulus: Optional[str] = None
    soal: Optional[str] = None
    kunci_jawaban: Optional[str] = None
    nomor_soal: Optional[int] = None


class KisiKisiSyncRequest(FilterKonteks):
    nama_asesmen: str


class SiswaSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    nis: str = "-"
    nama: str
    kelas: str


class NilaiSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    siswa_id: int
    atp_id: int
    mapel: str = ""
    semester: str = "1"
    nilai: int = Field(default=0, ge=0, le=100)


class RekapNilaiSiswa(BaseModel):
    siswa_id: int
    nis: str
    nama: str
    nilai: Dict[int, int] # atp_id -> nilai
    rata_rata: float


class PengaturanSekolahSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    nama_sekolah: str = ""
    alamat: str = ""
    kepala_sekolah: str = ""
    nip_kepala_sekolah: str = "-"
