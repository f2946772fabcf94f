import enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from perangkat.utils.time_utils import BULAN


class Fase(str, enum.Enum):
    A = "Fase A"
    B = "Fase B"
    C = "Fase C"


KELAS_FASE = {
    "1": Fase.A, "2": Fase.A,
    "3": Fase.B, "4": Fase.B,
    "5": Fase.C, "6": Fase.C,
}


def fase_for_kelas(kelas: str) -> Fase:
    try:
        return KELAS_FASE[str(kelas).strip()]
    except KeyError:
        raise ValueError(f"Kelas tidak dikenal: {kelas!r}")


def normalize_text(value: Optional[str]) -> str:
    return (value or "").strip().lower()


class FilterKonteks(BaseModel):
    """Pilihan fase/kelas/mapel/semester yang sedang aktif di layar guru."""
    fase: Optional[Fase] = None
    kelas: str
    mapel: str
    semester: Optional[str] = None

    @model_validator(mode="after")
    def _derive_fase(self):
        if self.fase is None:
            self.fase = fase_for_kelas(self.kelas)
        if self.semester is not None:
            self.semester = str(self.semester)
        return self

    def matches(self, item: Any, with_semester: bool = True, with_fase: bool = True) -> bool:
        if with_fase and getattr(item, "fase", None) != self.fase.value:
            return False
        if str(getattr(item, "kelas", "")).strip() != str(self.kelas).strip():
            return False
        if normalize_text(getattr(item, "mapel", "")) != normalize_text(self.mapel):
            return False
        if with_semester and self.semester is not None and hasattr(item, "semester"):
            return str(getattr(item, "semester", "")) == self.semester
        return True

    def as_fields(self, with_semester: bool = True) -> Dict[str, Any]:
        data = {"fase": self.fase.value, "kelas": self.kelas, "mapel": self.mapel}
        if with_semester and self.semester is not None:
            data["semester"] = self.semester
        return data


class TanggalPelaksanaan(BaseModel):
    model_config = ConfigDict(frozen=True)

    bulan: str
    minggu: int
    tanggal: int

    @property
    def token(self) -> str:
        return f"{self.bulan}|{self.minggu}|{self.tanggal}"

    @property
    def sort_key(self):
        return BULAN.index(self.bulan), self.tanggal


def parse_bulan_pelaksanaan(text: Optional[str]) -> List[TanggalPelaksanaan]:
    """Baca string "Bulan|Minggu|Tanggal,..." dari database. Token rusak dilewati."""
    result = []
    for raw in (text or "").split(","):
        parts = [p.strip() for p in raw.split("|")]
        if len(parts) < 3 or parts[0] not in BULAN:
            continue
        try:
            result.append(TanggalPelaksanaan(bulan=parts[0], minggu=int(parts[1]), tanggal=int(parts[2])))
        except ValueError:
            continue
    return result


def format_bulan_pelaksanaan(dates: List[TanggalPelaksanaan]) -> str:
    return ",".join(d.token for d in dates)


# --- Snapshot / payload per tahap ---

class _Snapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None


class CapaianPembelajaranSchema(_Snapshot):
    fase: Fase
    mapel: str
    kode: str = ""
    elemen: str = ""
    deskripsi: str = ""


class AnalisisSchema(_Snapshot):
    cp_id: Optional[int] = None
    fase: str
    kelas: str
    mapel: str
    materi: str = ""
    sub_materi: str = ""
    tujuan_pembelajaran: str = ""
    index_order: int = 0


class ATPSchema(_Snapshot):
    fase: str
    kelas: str
    mapel: str
    elemen: str = ""
    capaian_pembelajaran: str = ""
    materi: str = ""
    sub_materi: str = ""
    tujuan_pembelajaran: str = ""
    alur_tujuan_pembelajaran: str = ""
    alokasi_waktu: str = ""
    dimensi_profil_lulusan: str = ""
    asesmen_awal: str = ""
    asesmen_proses: str = ""
    asesmen_akhir: str = ""
    sumber_belajar: str = ""
    index_order: int = 0


class ProtaSchema(_Snapshot):
    fase: str
    kelas: str
    mapel: str
    tujuan_pembelajaran: str = ""
    materi_pokok: str = ""
    sub_materi: str = ""
    jp: str = ""
    semester: str = "1"
    index_order: int = 0


class PromesSchema(_Snapshot):
    fase: str
    kelas: str
    semester: str
    mapel: str
    materi_pokok: str = ""
    sub_materi: str = ""
    tujuan_pembelajaran: str = ""
    alokasi_waktu: str = ""
    bulan_pelaksanaan: str = ""
    jadwal_mingguan: Dict[str, List[int]] = Field(default_factory=dict)
    keterangan: str = ""
    is_asesmen: bool = False
    index_order: int = 0

    @property
    def tanggal_pelaksanaan(self) -> List[TanggalPelaksanaan]:
        return parse_bulan_pelaksanaan(self.bulan_pelaksanaan)


class RPMSchema(_Snapshot):
    atp_id: Optional[int] = None
    fase: str
    kelas: str
    semester: str = "1"
    mapel: str
    tujuan_pembelajaran: str = ""
    materi: str = ""
    sub_materi: str = ""
    alokasi_waktu: str = ""
    jumlah_pertemuan: int = 1
    asesmen_awal: str = ""
    dimensi_profil: List[str] = Field(default_factory=list)
    praktik_pedagogis: str = ""
    kemitraan: str = ""
    lingkungan_belajar: str = ""
    pemanfaatan_digital: str = ""
    kegiatan_awal: str = ""
    kegiatan_inti: str = ""
    kegiatan_penutup: str = ""
    asesmen_teknik: str = ""


class LKPDSchema(_Snapshot):
    rpm_id: Optional[int] = None
    fase: str
    kelas: str
    semester: str = "1"
    mapel: str
    judul: str = ""
    tujuan_pembelajaran: str = ""
    petunjuk: str = ""
    materi_ringkas: str = ""
    langkah_kerja: str = ""
    tugas_mandiri: str = ""
    refleksi: str = ""
    jumlah_pertemuan: int = 1


class HasilSinkron(BaseModel):
    dibuat: int = 0
    dilewati: int = 0
    gagal: int = 0

    @property
    def pesan(self) -> str:
        if self.gagal:
            return f"{self.dibuat} data baru dibuat, {self.gagal} gagal disimpan."
        if self.dibuat:
            return f"Berhasil menyinkronkan {self.dibuat} data baru."
        return "Data sudah sinkron, tidak ada data baru."

    def as_response(self) -> dict:
        return {**self.model_dump(), "pesan": self.pesan}


class TambahBarisRequest(BaseModel):
    fase: Optional[Fase] = None
    kelas: str
    mapel: str
    semester: Optional[str] = None
    asesmen: bool = False # khusus PROMES


def same_text_fields(a: Any, b: Any, *fields: str) -> bool:
    return all(normalize_text(str(getattr(a, f, ""))) == normalize_text(str(getattr(b, f, ""))) for f in fields)
