# Overview: Role vocabularies for shop staff.
#
# SystemRole is what the staff member's User account is authorized as.
# FunctionalRole is the HR/Finance/CRM/Sales specialty recorded on the Employee.


class SystemRole:
    """Roles assignable to a staff User account."""
    HR = "HR"
    FINANCE_STAFF = "FINANCE_STAFF"
    FINANCE_MANAGER = "FINANCE_MANAGER"
    CRM = "CRM"
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    SCM = "SCM"
    MRP = "MRP"

    ALL = (HR, FINANCE_STAFF, FINANCE_MANAGER, CRM, MANAGER, STAFF, SCM, MRP)


class FunctionalRole:
    """Specialties an Employee can hold inside the shop."""
    HR_MANAGER = "HR_MANAGER"
    HR_SPECIALIST = "HR_SPECIALIST"
    PAYROLL_SPECIALIST = "PAYROLL_SPECIALIST"
    FINANCE_MANAGER = "FINANCE_MANAGER"
    FINANCE_STAFF = "FINANCE_STAFF"
    ACCOUNTANT = "ACCOUNTANT"
    CRM_MANAGER = "CRM_MANAGER"
    CRM_STAFF = "CRM_STAFF"
    SALES_MANAGER = "SALES_MANAGER"
    SALES_STAFF = "SALES_STAFF"

    ALL = (
        HR_MANAGER,
        HR_SPECIALIST,
        PAYROLL_SPECIALIST,
        FINANCE_MANAGER,
        FINANCE_STAFF,
        ACCOUNTANT,
        CRM_MANAGER,
        CRM_STAFF,
        SALES_MANAGER,
        SALES_STAFF,
    )


def normalize_system_role(value: str | None) -> str | None:
    """Map user input ("manager", " Staff ") onto a SystemRole value, or None."""
    if value is None:
        return None
    candidate = str(value).strip().upper().replace(" ", "_").replace("-", "_")
    if candidate in SystemRole.ALL:
        return candidate
    return None
