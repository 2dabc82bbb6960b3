from inkbook.storage.memory import InMemoryAppointmentRepository, InMemoryResourceRepository
from inkbook.storage.repository import AppointmentRepository, ResourceRepository

__all__ = [
    "AppointmentRepository", "ResourceRepository",
    "InMemoryAppointmentRepository", "InMemoryResourceRepository",
]
