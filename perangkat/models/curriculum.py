from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, JSON
from perangkat.database import Base

class CapaianPembelajaran(Base):
    __tablename__ = "cps"

    id = Column(Integer, primary_key=True, index=True)
    fase = Column(String, index=True) # Fase A, Fase B, Fase C
    mapel = Column(String, index=True)
    kode = Column(String, default="")
    elemen = Column(String, default="") # Bilangan, Aljabar
    deskripsi = Column(Text, default="") # Teks CP asli

class AnalisisCP(Base):
    __tablename__ = "analisis"

    id = Column(Integer, primary_key=True, index=True)
    cp_id = Column(Integer, ForeignKey("cps.id", ondelete="SET NULL"), nullable=True)
    fase = Column(String, index=True)
    kelas = Column(String, index=True)
    mapel = Column(String, index=True)
    materi = Column(String, default="")
    sub_materi = Column(String, default="")
    tujuan_pembelajaran = Column(Text, default="")
    index_order = Column(Integer, default=0)

class ATPItem(Base):
    __tablename__ = "atp"

    id = Column(Integer, primary_key=True, index=True)
    fase = Column(String, index=True)
    kelas = Column(String, index=True)
    mapel = Column(String, index=True)
    elemen = Column(String, default="")
    capaian_pembelajaran = Column(Text, default="")
    materi = Column(String, default="")
    sub_materi = Column(String, default="")
    tujuan_pembelajaran = Column(Text, default="")
    alur_tujuan_pembelajaran = Column(Text, default="")
    alokasi_waktu = Column(String, default="")
    dimensi_profil_lulusan = Column(Text, default="")
    asesmen_awal = Column(Text, default="")
    asesmen_proses = Column(Text, default="")
    asesmen_akhir = Column(Text, default="")
    sumber_belajar = Column(Text, default="")
    index_order = Column(Integer, default=0)

class ProtaItem(Base):
    __tablename__ = "prota"

    id = Column(Integer, primary_key=True, index=True)
    fase = Column(String, index=True)
    kelas = Column(String, index=True)
    mapel = Column(String, index=True)
    tujuan_pembelajaran = Column(Text, default="")
    materi_pokok = Column(String, default="")
    sub_materi = Column(String, default="")
    jp = Column(String, default="") # Teks bebas: "4", "2,5"
    semester = Column(String, default="1")
    index_order = Column(Integer, default=0)

class PromesItem(Base):
    __tablename__ = "promes"

    id = Column(Integer, primary_key=True, index=True)
    fase = Column(String, index=True)
    kelas = Column(String, index=True)
    semester = Column(String, index=True)
    mapel = Column(String, index=True)
    materi_pokok = Column(String, default="")
    sub_materi = Column(String, default="")
    tujuan_pembelajaran = Column(Text, default="")
    alokasi_waktu = Column(String, default="")
    # "Juli|1|7,Juli|2|14" - format lama tetap disimpan apa adanya
    bulan_pelaksanaan = Column(Text, default="")
    jadwal_mingguan = Column(JSON, default=dict) # {"Juli": [1, 2]}
    keterangan = Column(Text, default="")
    is_asesmen = Column(Boolean, default=False)
    index_order = Column(Integer, default=0)

class RPMItem(Base):
    __tablename__ = "rpm"

    id = Column(Integer, primary_key=True, index=True)
    atp_id = Column(Integer, ForeignKey("atp.id", ondelete="SET NULL"), nullable=True)
    fase = Column(String, index=True)
    kelas = Column(String, index=True)
    semester = Column(String, default="1")
    mapel = Column(String, index=True)
    tujuan_pembelajaran = Column(Text, default="")
    materi = Column(String, default="")
    sub_materi = Column(String, default="")
    alokasi_waktu = Column(String, default="")
    jumlah_pertemuan = Column(Integer, default=1)
    asesmen_awal = Column(Text, default="")
    dimensi_profil = Column(JSON, default=list)
    praktik_pedagogis = Column(Text, default="")
    kemitraan = Column(Text, default="")
    lingkungan_belajar = Column(Text, default="")
    pemanfaatan_digital = Column(Text, default="")
    kegiatan_awal = Column(Text, default="")
    kegiatan_inti = Column(Text, default="")
    kegiatan_penutup = Column(Text, default="")
    asesmen_teknik = Column(Text, default="")

class LKPDItem(Base):
    __tablename__ = "lkpd"

    id = Column(Integer, primary_key=True, index=True)
    rpm_id = Column(Integer, ForeignKey("rpm.id", ondelete="SET NULL"), nullable=True)
    fase = Column(String, index=True)
    kelas = Column(String, index=True)
    semester = Column(String, default="1")
    mapel = Column(String, index=True)
    judul = Column(String, default="")
    tujuan_pembelajaran = Column(Text, default="")
    petunjuk = Column(Text, default="")
    materi_ringkas = Column(Text, default="")
    langkah_kerja = Column(Text, default="")
    tugas_mandiri = Column(Text, default="")
    refleksi = Column(Text, default="")
    jumlah_pertemuan = Column(Integer, default=1)
