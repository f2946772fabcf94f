from typing import List, Optional

from pydantic import BaseModel, ValidationError

from perangkat.gemini_client import AssistantError, gemini_client
from perangkat.prompts.curriculum_prompt import (
    build_analisis_prompt, build_jurnal_prompt, build_kisikisi_prompt, build_lkpd_prompt, build_rpm_prompt,
)
from perangkat.schemas.evaluasi_schema import KisiKisiSchema
from perangkat.schemas.jurnal_schema import JurnalSchema
from perangkat.schemas.kurikulum_schema import CapaianPembelajaranSchema, LKPDSchema, RPMSchema


class AnalisisAI(BaseModel):
    materi: str
    sub_materi: str
    tp: str


class RPMAI(BaseModel):
    praktik_pedagogis: str
    kemitraan: str
    lingkungan_belajar: str
    pemanfaatan_digital: str
    kegiatan_awal: str
    kegiatan_inti: str
    kegiatan_penutup: str


class LKPDAI(BaseModel):
    petunjuk: str
    materi_ringkas: str
    langkah_kerja: str
    tugas_mandiri: str
    refleksi: str


class JurnalAI(BaseModel):
    detail_kegiatan: str
    pedagogik: str


class SoalAI(BaseModel):
    indikator_soal: str
    stimulus: str = ""
    soal: str
    kunci_jawaban: str


def _validate(model, data):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise AssistantError("Data dari AI tidak lengkap.") from e


class AssistantService:
    """Draft isi dokumen lewat Gemini. Tidak pernah menyentuh penjadwalan atau sinkronisasi."""

    @staticmethod
    async def analyze_cp(cp: CapaianPembelajaranSchema, kelas: str) -> List[dict]:
        data = await gemini_client.generate_json(build_analisis_prompt(cp, kelas), list[AnalisisAI])
        if not isinstance(data, list):
            raise AssistantError("AI tidak mengembalikan daftar TP.")
        return [_validate(AnalisisAI, row).model_dump() for row in data]

    @staticmethod
    async def draft_rpm(rpm: RPMSchema) -> dict:
        data = await gemini_client.generate_json(build_rpm_prompt(rpm), RPMAI)
        return _validate(RPMAI, data).model_dump()

    @staticmethod
    async def draft_lkpd(lkpd: LKPDSchema, rpm: Optional[RPMSchema] = None) -> dict:
        data = await gemini_client.generate_json(build_lkpd_prompt(lkpd, rpm), LKPDAI)
        return _validate(LKPDAI, data).model_dump()

    @staticmethod
    async def draft_jurnal(jurnal: JurnalSchema, rpm: Optional[RPMSchema] = None) -> dict:
        data = await gemini_client.generate_json(build_jurnal_prompt(jurnal, rpm), JurnalAI)
        result = _validate(JurnalAI, data)
        changes = {"detail_kegiatan": result.detail_kegiatan}
        if result.pedagogik:
            changes["praktik_pedagogis"] = result.pedagogik
        return changes

    @staticmethod
    async def draft_soal(kisi: KisiKisiSchema) -> dict:
        data = await gemini_client.generate_json(build_kisikisi_prompt(kisi), SoalAI)
        return _validate(SoalAI, data).model_dump()
