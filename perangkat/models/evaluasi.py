from sqlalchemy import Column, Integer, String, Text, ForeignKey, UniqueConstraint
from perangkat.database import Base

class KisiKisi(Base):
    __tablename__ = "kisikisi"

    id = Column(Integer, primary_key=True, index=True)
    atp_id = Column(Integer, ForeignKey("atp.id", ondelete="SET NULL"), nullable=True)
    fase = Column(String, index=True)
    kelas = Column(String, index=True)
    semester = Column(String, index=True)
    mapel = Column(String, index=True)
    nama_asesmen = Column(String, index=True) # Sumatif Lingkup Materi 1, SAS, ...
    elemen = Column(String, default="")
    cp = Column(Text, default="")
    kompetensi = Column(String, default="Pengetahuan dan Pemahaman")
    tujuan_pembelajaran = Column(Text, default="")
    indikator_soal = Column(Text, default="")
    jenis = Column(String, default="Tes") # Tes, Non Tes
    bentuk_soal = Column(String, default="Pilihan Ganda")
    stimulus = Column(Text, default="")
    soal = Column(Text, default="")
    kunci_jawaban = Column(Text, default="")
    nomor_soal = Column(Integer, default=1)

class Siswa(Base):
    __tablename__ = "siswa"

    id = Column(Integer, primary_key=True, index=True)
    nis = Column(String, default="-")
    nama = Column(String, nullable=False)
    kelas = Column(String, index=True, nullable=False)

class Nilai(Base):
    __tablename__ = "nilai"
    __table_args__ = (UniqueConstraint("siswa_id", "atp_id", name="uq_nilai_siswa_tp"),)

    id = Column(Integer, primary_key=True, index=True)
    siswa_id = Column(Integer, ForeignKey("siswa.id", ondelete="CASCADE"), nullable=False)
    atp_id = Column(Integer, ForeignKey("atp.id", ondelete="CASCADE"), nullable=False)
    mapel = Column(String, index=True)
    semester = Column(String, default="1")
    nilai = Column(Integer, default=0) # 0-100
