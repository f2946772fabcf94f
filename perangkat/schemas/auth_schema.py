from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal

class UserCreate(BaseModel):
    username: str
    password: str
    full_name: str
    nip: str = "-"
    role: Literal["admin", "guru"] = "guru"
    teacher_type: Literal["kelas", "mapel"] = "mapel"
    kelas: str = "-"
    mapel_diampu: List[str] = Field(default_factory=list)

class UserLogin(BaseModel):
    username: str
    password: str

class CurrentUser(BaseModel):
    """Identitas pengguna aktif, hanya dipakai sebagai konteks filter/izin."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    full_name: str = ""
    nip: str = "-"
    role: str = "guru"
    teacher_type: str = "mapel"
    kelas: str = "-"
    mapel_diampu: List[str] = Field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_class_locked(self) -> bool:
        return self.role == "guru" and self.teacher_type == "kelas" and self.kelas not in ("-", "Multikelas")
