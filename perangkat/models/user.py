from sqlalchemy import Column, Integer, String, Boolean, JSON
from perangkat.database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    full_name = Column(String, nullable=False, default="")
    nip = Column(String, default="-")
    role = Column(String, default="guru") # admin, guru
    teacher_type = Column(String, default="mapel") # kelas, mapel
    kelas = Column(String, default="-") # '1'..'6', '-' atau 'Multikelas'
    mapel_diampu = Column(JSON, default=list)
    is_active = Column(Boolean, default=True)
