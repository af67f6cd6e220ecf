"""
Appointments module.

- Clients book a slot (date + HH:MM) with an available doctor
- One active (pending/confirmed) appointment per doctor slot
- Status changes follow constants.STATUS_TRANSITIONS and are audited
"""
