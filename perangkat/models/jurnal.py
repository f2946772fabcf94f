from sqlalchemy import Column, Integer, String, Text, ForeignKey
from perangkat.database import Base

class JurnalHarian(Base):
    __tablename__ = "jurnal_harian"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    user_name = Column(String, default="")
    tahun_pelajaran = Column(String, index=True)
    kelas = Column(String, index=True)
    tanggal = Column(String, index=True) # yyyy-mm-dd
    mapel = Column(String)
    materi = Column(Text, default="")
    detail_kegiatan = Column(Text, default="")
    praktik_pedagogis = Column(Text, default="")
    absen_siswa = Column(Text, default="")
    catatan_kejadian = Column(Text, default="")
