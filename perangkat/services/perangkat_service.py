from typing import Iterable, List, Optional

from perangkat.schemas.kurikulum_schema import ATPSchema, PromesSchema, RPMSchema, same_text_fields

DIMENSI_PROFIL = [
    "Keimanan & Ketakwaan",
    "Kewargaan",
    "Penalaran Kritis",
    "Kreativitas",
    "Kolaborasi",
    "Kemandirian",
    "Kesehatan",
    "Komunikasi",
]

# Kata kunci untuk menebak dimensi profil dari teks ATP
KATA_KUNCI_DIMENSI = {
    DIMENSI_PROFIL[0]: ["keimanan", "ketakwaan", "beriman", "takwa", "akhlak", "tuhan", "esa"],
    DIMENSI_PROFIL[1]: ["kewargaan", "kebinekaan", "global", "negara", "warga"],
    DIMENSI_PROFIL[2]: ["penalaran kritis", "bernalar kritis", "kritis", "analisis", "logis"],
    DIMENSI_PROFIL[3]: ["kreativitas", "kreatif", "karya", "cipta"],
    DIMENSI_PROFIL[4]: ["kolaborasi", "gotong royong", "kerjasama", "tim", "bersama"],
    DIMENSI_PROFIL[5]: ["kemandirian", "mandiri", "sendiri", "disiplin"],
    DIMENSI_PROFIL[6]: ["kesehatan", "jasmani", "sehat", "olahraga", "fisik"],
    DIMENSI_PROFIL[7]: ["komunikasi", "bahasa", "bicara", "presentasi", "interaksi"],
}


def guess_dimensi(text: str) -> List[str]:
    raw = (text or "").lower()
    return [dimensi for dimensi, words in KATA_KUNCI_DIMENSI.items() if any(w in raw for w in words)]


def find_promes_for(atp: ATPSchema, promes: Iterable[PromesSchema]) -> Optional[PromesSchema]:
    for p in promes:
        if same_text_fields(p, atp, "kelas", "mapel", "tujuan_pembelajaran"):
            return p
    return None


def rpm_from_atp(atp: ATPSchema, promes: Iterable[PromesSchema], semester: str = "1") -> RPMSchema:
    """Rencana pembelajaran baru yang isinya disalin dari satu baris ATP."""
    match = find_promes_for(atp, promes)
    jumlah_pertemuan = len(match.tanggal_pelaksanaan) if match else 0
    return RPMSchema(
        atp_id=atp.id,
        fase=atp.fase,
        kelas=atp.kelas,
        semester=match.semester if match else semester,
        mapel=atp.mapel,
        tujuan_pembelajaran=atp.tujuan_pembelajaran,
        materi=atp.materi,
        sub_materi=atp.sub_materi,
        alokasi_waktu=(match.alokasi_waktu if match and match.alokasi_waktu else atp.alokasi_waktu),
        jumlah_pertemuan=max(1, jumlah_pertemuan),
        asesmen_awal=atp.asesmen_awal,
        dimensi_profil=guess_dimensi(f"{atp.dimensi_profil_lulusan} {atp.tujuan_pembelajaran}"),
    )


def lkpd_from_rpm(rpm: RPMSchema) -> dict:
    return {
        "rpm_id": rpm.id,
        "fase": rpm.fase,
        "kelas": rpm.kelas,
        "semester": rpm.semester,
        "mapel": rpm.mapel,
        "judul": f"LKPD: {rpm.materi}",
        "tujuan_pembelajaran": rpm.tujuan_pembelajaran,
        "jumlah_pertemuan": rpm.jumlah_pertemuan or 1,
    }
