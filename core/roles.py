"""
Role catalogue.

Roles are Django auth groups; ``ROLE_PERMISSIONS`` lists the Django
permissions granted to each group by ``manage.py ensure_roles``.
"""

ADMIN = 'admin'
CARDIOLOGIST = 'cardiologist'
DOCTOR = 'doctor'
NURSE = 'nurse'
HEALTH_WORKER = 'health_worker'
PATIENT = 'patient'

STAFF_ROLES = (ADMIN, CARDIOLOGIST, DOCTOR, NURSE, HEALTH_WORKER)
CLINICIAN_ROLES = (CARDIOLOGIST, DOCTOR)

ROLE_PERMISSIONS = {
    ADMIN: [
        'core.view_assessment', 'core.change_assessment', 'core.validate_assessment', 'core.export_assessment',
        'core.view_referral', 'core.add_referral', 'core.change_referral',
        'core.add_emergencyalert', 'core.view_emergencyalert',
        'core.view_healthcarefacility', 'core.change_healthcarefacility',
        'core.view_appointment', 'core.add_appointment', 'core.change_appointment',
        'core.view_assessmentcomment', 'core.add_assessmentcomment',
    ],
    CARDIOLOGIST: [
        'core.view_assessment', 'core.validate_assessment', 'core.export_assessment',
        'core.view_referral', 'core.add_referral', 'core.change_referral',
        'core.add_emergencyalert', 'core.view_emergencyalert',
        'core.view_appointment', 'core.add_appointment', 'core.change_appointment',
        'core.view_assessmentcomment', 'core.add_assessmentcomment',
    ],
    DOCTOR: [
        'core.view_assessment', 'core.validate_assessment',
        'core.view_referral', 'core.add_referral', 'core.change_referral',
        'core.view_emergencyalert',
        'core.view_appointment', 'core.add_appointment', 'core.change_appointment',
        'core.view_assessmentcomment', 'core.add_assessmentcomment',
    ],
    NURSE: [
        'core.view_assessment',
        'core.view_referral', 'core.add_referral',
        'core.view_emergencyalert',
        'core.view_appointment', 'core.add_appointment',
        'core.view_assessmentcomment', 'core.add_assessmentcomment',
    ],
    HEALTH_WORKER: [
        'core.view_assessment',
        'core.view_referral', 'core.add_referral',
        'core.view_emergencyalert',
    ],
    PATIENT: [],
}
