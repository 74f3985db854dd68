"""
URL mappings for the clinical API, mounted under ``/api/v1/``.

Trailing slashes are omitted, matching the mobile and web clients.
"""
from django.urls import path

from .auth_views import (
    device_revoke_view,
    devices_view,
    jwt_logout_view,
    jwt_refresh_view,
    login_view,
    me_view,
    mfa_disable_view,
    mfa_enable_view,
    mfa_login_view,
    mfa_verify_view,
)
from .views import alerts, appointments, assessments, facilities, notifications, patients, referrals

urlpatterns = [
    # Authentication
    path('auth/login', login_view, name='login'),
    path('auth/mfa/login', mfa_login_view, name='mfa-login'),
    path('auth/refresh', jwt_refresh_view, name='jwt-refresh'),
    path('auth/logout', jwt_logout_view, name='logout'),
    path('auth/me', me_view, name='me'),
    path('auth/mfa/enable', mfa_enable_view, name='mfa-enable'),
    path('auth/mfa/verify', mfa_verify_view, name='mfa-verify'),
    path('auth/mfa/disable', mfa_disable_view, name='mfa-disable'),
    path('auth/devices', devices_view, name='devices'),
    path('auth/devices/<str:device_id>', device_revoke_view, name='device-revoke'),

    # Assessments
    path('assessments', assessments.list_assessments, name='assessment-list'),
    path('assessments/statistics', assessments.assessment_statistics, name='assessment-statistics'),
    path('assessments/export', assessments.export_assessments, name='assessment-export'),
    path('assessments/bulk', assessments.bulk_sync_assessments, name='assessment-bulk'),
    path('assessments/<int:pk>', assessments.assessment_detail, name='assessment-detail'),
    path('assessments/<int:pk>/validate', assessments.validate_assessment, name='assessment-validate'),
    path('assessments/<int:pk>/reject', assessments.reject_assessment, name='assessment-reject'),
    path('assessments/<int:pk>/archive', assessments.archive_assessment, name='assessment-archive'),
    path('assessments/<int:pk>/risk-adjustments', assessments.risk_adjustments, name='assessment-risk-adjustments'),
    path('assessments/<int:pk>/notes', assessments.clinical_notes, name='assessment-notes'),
    path('mobile/assessments', assessments.mobile_submit_assessment, name='mobile-assessment'),

    # Patients (derived from assessments)
    path('patients', patients.list_patients, name='patient-list'),
    path('patients/statistics', patients.patient_statistics, name='patient-statistics'),
    path('patients/<int:pk>', patients.patient_detail, name='patient-detail'),

    # Referrals
    path('referrals', referrals.referrals, name='referral-list'),
    path('referrals/statistics', referrals.referral_statistics, name='referral-statistics'),
    path('referrals/<int:pk>', referrals.referral_detail, name='referral-detail'),
    path('referrals/<int:pk>/assign', referrals.assign_referral, name='referral-assign'),
    path('referrals/<int:pk>/status', referrals.referral_status, name='referral-status'),

    # Emergency alerts
    path('alerts', alerts.alerts, name='alert-list'),

    # Appointments
    path('appointments', appointments.appointments, name='appointment-list'),
    path('appointments/<int:pk>/confirm', appointments.confirm_appointment, name='appointment-confirm'),
    path('appointments/<int:pk>/cancel', appointments.cancel_appointment, name='appointment-cancel'),
    path('appointments/<int:pk>/reschedule', appointments.reschedule_appointment, name='appointment-reschedule'),
    path('appointments/<int:pk>/check-in', appointments.check_in_appointment, name='appointment-check-in'),
    path('appointments/<int:pk>/complete', appointments.complete_appointment, name='appointment-complete'),

    # Facilities (public)
    path('facilities', facilities.list_facilities, name='facility-list'),
    path('facilities/nearby', facilities.nearby_facilities, name='facility-nearby'),
    path('facilities/<int:pk>', facilities.facility_detail, name='facility-detail'),

    # Notifications
    path('notifications', notifications.list_notifications, name='notification-list'),
    path('notifications/unread-count', notifications.unread_count, name='notification-unread-count'),
    path('notifications/read-all', notifications.mark_all_read, name='notification-read-all'),
    path('notifications/preferences', notifications.preferences, name='notification-preferences'),
    path('notifications/<int:pk>/read', notifications.mark_read, name='notification-read'),
]
