from typing import Optional

from pydantic import BaseModel, ConfigDict


class JurnalSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    user_id: Optional[int] = None
    user_name: str = ""
    tahun_pelajaran: str
    kelas: str
    tanggal: str
    mapel: str
    materi: str = ""
    detail_kegiatan: str = ""
    praktik_pedagogis: str = ""
    absen_siswa: str = ""
    catatan_kejadian: str = ""


class SyncJurnalRequest(BaseModel):
    kelas: str
    tahun_pelajaran: Optional[str] = None
