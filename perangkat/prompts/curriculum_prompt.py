from perangkat.schemas.evaluasi_schema import KisiKisiSchema
from perangkat.schemas.jurnal_schema import JurnalSchema
from perangkat.schemas.kurikulum_schema import CapaianPembelajaranSchema, LKPDSchema, RPMSchema


def build_analisis_prompt(cp: CapaianPembelajaranSchema, kelas: str) -> str:
    return f"""
Berperanlah sebagai Ahli Kurikulum Merdeka untuk Sekolah Dasar.
Pecah teks Capaian Pembelajaran (CP) berikut menjadi daftar materi dan
Tujuan Pembelajaran (TP) yang linear (berurutan dari yang paling dasar)
untuk SD Kelas {kelas} ({cp.fase.value}).

Mata Pelajaran: {cp.mapel}
Elemen: {cp.elemen}
CP: "{cp.deskripsi}"

Setiap baris berisi: materi, sub_materi, tp.
"""


def build_rpm_prompt(rpm: RPMSchema) -> str:
    return f"""
Susun Rencana Pembelajaran Mendalam (RPM) SD Kelas {rpm.kelas} untuk {rpm.jumlah_pertemuan or 1} kali pertemuan.
Mata Pelajaran: {rpm.mapel}
Tujuan: {rpm.tujuan_pembelajaran}
Materi: {rpm.materi}{f" - {rpm.sub_materi}" if rpm.sub_materi else ""}
Alokasi Waktu: {rpm.alokasi_waktu or "-"} JP
Model: {rpm.praktik_pedagogis or "Pilih model yang paling sesuai"}

ATURAN FORMAT WAJIB:
1. Field 'kegiatan_awal', 'kegiatan_inti' dan 'kegiatan_penutup' WAJIB menggunakan format daftar bernomor (1., 2., 3., dst).
2. Setiap poin kegiatan harus dipisahkan oleh baris baru.
"""


def build_lkpd_prompt(lkpd: LKPDSchema, rpm: RPMSchema = None) -> str:
    materi = rpm.materi if rpm else lkpd.judul.replace("LKPD:", "").strip()
    return f"""
Susun Lembar Kerja Peserta Didik (LKPD) untuk SD Kelas {lkpd.kelas}.
Mata Pelajaran: {lkpd.mapel}
Topik: {materi}
Tujuan: {lkpd.tujuan_pembelajaran}
Jumlah Pertemuan: {lkpd.jumlah_pertemuan or 1}

Gunakan bahasa yang mudah dipahami anak SD. Langkah kerja ditulis sebagai daftar bernomor.
"""


def build_jurnal_prompt(jurnal: JurnalSchema, rpm: RPMSchema = None) -> str:
    referensi = ""
    if rpm:
        referensi = f"""
REFERENSI RPM:
- Kegiatan Awal: {rpm.kegiatan_awal}
- Kegiatan Inti: {rpm.kegiatan_inti}
- Kegiatan Penutup: {rpm.kegiatan_penutup}
- Praktik Pedagogis: {rpm.praktik_pedagogis}
"""
    return f"""
Tuliskan narasi singkat jurnal harian guru SD (3-4 kalimat, sudut pandang guru).
Tanggal: {jurnal.tanggal}
Kelas: {jurnal.kelas}
Mata Pelajaran: {jurnal.mapel}
Materi: {jurnal.materi}
{referensi}
Kembalikan detail_kegiatan (narasi) dan pedagogik (model/metode yang dipakai).
"""


def build_kisikisi_prompt(kisi: KisiKisiSchema) -> str:
    return f"""
Buat satu butir soal untuk kisi-kisi {kisi.nama_asesmen} SD Kelas {kisi.kelas} semester {kisi.semester}.
Mata Pelajaran: {kisi.mapel}
Elemen: {kisi.elemen or "-"}
Tujuan Pembelajaran: {kisi.tujuan_pembelajaran}
Level Kognitif: {kisi.kompetensi}
Bentuk Soal: {kisi.bentuk_soal}

Kembalikan indikator_soal, stimulus (boleh kosong), soal, dan kunci_jawaban.
Untuk pilihan ganda, tulis opsi A-D di dalam soal.
"""
