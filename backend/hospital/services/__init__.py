from hospital.services import audit, security
from hospital.services.auth import (
    AuthenticationError,
    authenticate_user,
    create_token_response,
    create_user,
    ensure_seed_data,
    list_users,
)
from hospital.services.beds import BedOccupancyManager
from hospital.services.clinical import (
    add_clinical_file,
    create_clinical_record,
    delete_clinical_file,
    get_clinical_record,
    list_clinical_files,
    list_patient_records,
    update_clinical_record,
)
from hospital.services.doctors import (
    create_doctor,
    create_schedule_rule,
    deactivate_doctor,
    deactivate_schedule_rule,
    get_doctor,
    list_doctors,
    list_schedule_rules,
    list_specialties,
    update_doctor,
)
from hospital.services.invoices import create_invoice, list_invoices
from hospital.services.patients import (
    create_patient,
    deactivate_patient,
    get_patient,
    list_patients,
    update_patient,
)
from hospital.services.scheduler import AppointmentScheduler
