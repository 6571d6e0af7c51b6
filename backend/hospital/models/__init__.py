from hospital.models.appointment import APPOINTMENT_STATUSES, Appointment
from hospital.models.audit import AuditEvent
from hospital.models.bed import BED_STATES, BED_TYPES, Bed, BedOccupancyRecord
from hospital.models.clinical import CLINICAL_FILE_TYPES, ClinicalFile, ClinicalRecord
from hospital.models.doctor import Doctor, DoctorScheduleRule
from hospital.models.invoice import PAYMENT_STATUSES, Invoice
from hospital.models.patient import Patient
from hospital.models.user import User
