from sqlalchemy import Column, Integer, String, Text, Boolean, UniqueConstraint
from perangkat.database import Base

class EventKalender(Base):
    __tablename__ = "kalender_events"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(String, index=True, nullable=False) # yyyy-mm-dd
    title = Column(String, nullable=False)
    type = Column(String, default="libur") # libur, ujian, kegiatan, penting
    description = Column(Text, default="")

class JadwalItem(Base):
    __tablename__ = "jadwal_pelajaran"
    __table_args__ = (UniqueConstraint("kelas", "hari", "jam_ke", name="uq_jadwal_slot"),)

    id = Column(Integer, primary_key=True, index=True)
    kelas = Column(String, index=True, nullable=False)
    hari = Column(String, nullable=False) # Senin..Jumat
    jam_ke = Column(Integer, nullable=False)
    mapel = Column(String, nullable=False)

class HariEfektif(Base):
    __tablename__ = "hari_efektif"
    __table_args__ = (UniqueConstraint("kelas", "semester", "bulan", name="uq_hari_efektif_bulan"),)

    id = Column(Integer, primary_key=True, index=True)
    kelas = Column(String, index=True, nullable=False)
    semester = Column(Integer, nullable=False)
    bulan = Column(String, nullable=False)
    jumlah_minggu = Column(Integer, default=4)
    minggu_tidak_efektif = Column(Integer, default=0)
    keterangan = Column(Text, default="")

class AcademicYear(Base):
    __tablename__ = "academic_years"

    id = Column(Integer, primary_key=True, index=True)
    year = Column(String, unique=True, nullable=False) # 2024/2025
    is_active = Column(Boolean, default=False)
