from hospital.api.v1 import appointments, audit, auth, beds, clinical_records, doctors, invoices, patients

__all__ = [
    "auth",
    "patients",
    "doctors",
    "appointments",
    "beds",
    "clinical_records",
    "invoices",
    "audit",
]
