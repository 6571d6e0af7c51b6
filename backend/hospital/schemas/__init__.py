from hospital.schemas.appointment import (
    AppointmentCancelRequest,
    AppointmentCreate,
    AppointmentRead,
    AppointmentStatusUpdate,
    AppointmentSummary,
    AppointmentUpdate,
    DoctorAvailability,
)
from hospital.schemas.audit import AuditEventRead
from hospital.schemas.auth import LoginRequest, TokenResponse, UserCreate, UserRead
from hospital.schemas.bed import (
    BedAssignRequest,
    BedCreate,
    BedDetail,
    BedListResponse,
    BedOccupancyRead,
    BedRead,
    BedReleaseRequest,
    BedSummary,
    BedUpdate,
)
from hospital.schemas.clinical import (
    ClinicalFileCreate,
    ClinicalFileRead,
    ClinicalRecordCreate,
    ClinicalRecordDetail,
    ClinicalRecordRead,
    ClinicalRecordUpdate,
)
from hospital.schemas.common import MessageResponse, Pagination
from hospital.schemas.doctor import (
    DoctorCreate,
    DoctorRead,
    DoctorUpdate,
    ScheduleRuleCreate,
    ScheduleRuleRead,
)
from hospital.schemas.invoice import InvoiceCreate, InvoiceRead
from hospital.schemas.patient import (
    PatientCreate,
    PatientRead,
    PatientSummary,
    PatientUpdate,
)
