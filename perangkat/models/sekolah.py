from sqlalchemy import Column, Integer, String, Text
from perangkat.database import Base

class PengaturanSekolah(Base):
    """Satu baris identitas sekolah untuk kop dokumen."""
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)
    nama_sekolah = Column(String, default="")
    alamat = Column(Text, default="")
    kepala_sekolah = Column(String, default="")
    nip_kepala_sekolah = Column(String, default="-")
