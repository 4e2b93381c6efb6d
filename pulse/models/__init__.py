from pulse.models.tenant import Tenant
from pulse.models.staff_account import StaffAccount
from pulse.models.pin_attempt import PinAttempt
from pulse.models.audit_log import AuditLog
