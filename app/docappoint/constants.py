"""
Central constants for the DocAppoint application.
"""
from __future__ import annotations

ROLE_CLIENT = "client"
ROLE_DOCTOR = "doctor"
ROLE_ADMIN = "admin"
ROLES = (ROLE_CLIENT, ROLE_DOCTOR, ROLE_ADMIN)

# Landing endpoint per role after login
ROLE_HOME_ENDPOINTS = {
    ROLE_CLIENT: "client.index",
    ROLE_DOCTOR: "doctor.index",
    ROLE_ADMIN: "admin.index",
}

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_REJECTED = "rejected"
STATUS_CANCELLED = "cancelled"
STATUS_COMPLETED = "completed"
APPOINTMENT_STATUSES = (
    STATUS_PENDING,
    STATUS_CONFIRMED,
    STATUS_REJECTED,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
)
ACTIVE_STATUSES = frozenset({STATUS_PENDING, STATUS_CONFIRMED})

# from-status -> allowed to-statuses
STATUS_TRANSITIONS = {
    STATUS_PENDING: frozenset({STATUS_CONFIRMED, STATUS_REJECTED, STATUS_CANCELLED}),
    STATUS_CONFIRMED: frozenset({STATUS_COMPLETED, STATUS_CANCELLED}),
    STATUS_REJECTED: frozenset(),
    STATUS_CANCELLED: frozenset(),
    STATUS_COMPLETED: frozenset(),
}

DEFAULT_SPECIALTY = "General"

SPECIALTIES = (
    "General",
    "Cardiology",
    "Dermatology",
    "ENT",
    "Gynecology",
    "Neurology",
    "Orthopedics",
    "Pediatrics",
    "Psychiatry",
)
