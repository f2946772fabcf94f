from perangkat.schemas.kurikulum_schema import ATPSchema, PromesSchema
from perangkat.services.perangkat_service import guess_dimensi, lkpd_from_rpm, rpm_from_atp

ATP = ATPSchema(
    id=3, fase="Fase C", kelas="5", mapel="Matematika",
    materi="Pecahan", sub_materi="Pecahan senilai",
    tujuan_pembelajaran="Peserta didik bernalar kritis membandingkan pecahan",
    alokasi_waktu="4", asesmen_awal="Tanya jawab", dimensi_profil_lulusan="Kolaborasi",
)


def test_guess_dimensi():
    assert guess_dimensi("bekerja sama dalam tim secara mandiri") == ["Kolaborasi", "Kemandirian"]
    assert guess_dimensi("") == []


def test_rpm_from_atp_uses_matching_promes():
    promes = [PromesSchema(
        fase="Fase C", kelas="5", semester="2", mapel="matematika",
        tujuan_pembelajaran=" peserta didik bernalar kritis membandingkan pecahan",
        alokasi_waktu="6", bulan_pelaksanaan="Januari|1|6,Januari|2|13",
    )]

    rpm = rpm_from_atp(ATP, promes)

    assert rpm.atp_id == 3
    assert rpm.semester == "2"
    assert rpm.alokasi_waktu == "6"
    assert rpm.jumlah_pertemuan == 2
    assert rpm.asesmen_awal == "Tanya jawab"
    assert rpm.dimensi_profil == ["Penalaran Kritis", "Kolaborasi"]


def test_rpm_from_atp_without_promes():
    rpm = rpm_from_atp(ATP, [])

    assert rpm.semester == "1"
    assert rpm.alokasi_waktu == "4"
    assert rpm.jumlah_pertemuan == 1

    lkpd = lkpd_from_rpm(rpm.model_copy(update={"id": 9}))
    assert lkpd["judul"] == "LKPD: Pecahan"
    assert lkpd["rpm_id"] == 9
