"""
Django admin registrations for the core models.

Superusers manage facilities and accounts here and can inspect the
clinical records and delivery logs written by the API.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    Appointment,
    Assessment,
    AssessmentComment,
    AssessmentRiskAdjustment,
    AuditEvent,
    ClinicalValidation,
    EmergencyAlert,
    HealthcareFacility,
    Notification,
    NotificationPreference,
    PushNotificationLog,
    Referral,
    ReferralHistory,
    SmsLog,
    TrustedDevice,
    User,
)


@admin.register(HealthcareFacility)
class HealthcareFacilityAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'level', 'region', 'has_emergency', 'accepts_referrals', 'is_active')
    list_filter = ('level', 'region', 'has_emergency', 'is_active')
    search_fields = ('code', 'name', 'city')


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'facility', 'mfa_enabled', 'is_staff', 'is_superuser')
    list_filter = ('groups', 'mfa_enabled', 'is_staff')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Clinic', {'fields': ('phone', 'facility', 'mfa_enabled', 'mfa_method')}),
    )


class ClinicalValidationInline(admin.TabularInline):
    model = ClinicalValidation
    extra = 0
    readonly_fields = ('doctor', 'validated_score', 'validated_level', 'agreement_level', 'created_at')


class RiskAdjustmentInline(admin.TabularInline):
    model = AssessmentRiskAdjustment
    extra = 0
    readonly_fields = ('adjusted_by', 'old_risk_score', 'new_risk_score', 'alert_triggered', 'created_at')


@admin.register(Assessment)
class AssessmentAdmin(admin.ModelAdmin):
    list_display = ('external_id', 'patient_full_name', 'final_risk_level', 'final_risk_score', 'status',
                    'archived_at', 'created_at')
    list_filter = ('status', 'final_risk_level', 'region')
    search_fields = ('external_id', 'patient_first_name', 'patient_last_name', 'patient_email')
    inlines = [ClinicalValidationInline, RiskAdjustmentInline]


class ReferralHistoryInline(admin.TabularInline):
    model = ReferralHistory
    extra = 0
    readonly_fields = ('action', 'previous_status', 'new_status', 'user', 'notes', 'created_at')


@admin.register(Referral)
class ReferralAdmin(admin.ModelAdmin):
    list_display = ('id', 'assessment', 'priority', 'urgency', 'status', 'target_facility', 'assigned_doctor')
    list_filter = ('status', 'priority', 'urgency')
    search_fields = ('id', 'assessment__external_id')
    inlines = [ReferralHistoryInline]


@admin.register(EmergencyAlert)
class EmergencyAlertAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'severity', 'target_audience', 'recipients_count', 'is_active', 'created_at')
    list_filter = ('severity', 'is_active')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'appointment_date', 'appointment_time', 'status')
    list_filter = ('status', 'type')
    search_fields = ('patient__username', 'doctor__username')


@admin.register(AssessmentComment)
class AssessmentCommentAdmin(admin.ModelAdmin):
    list_display = ('id', 'assessment', 'user', 'visibility', 'parent', 'created_at')
    list_filter = ('visibility', 'comment_type')


@admin.register(TrustedDevice)
class TrustedDeviceAdmin(admin.ModelAdmin):
    list_display = ('user', 'device_id', 'device_name', 'ip_address', 'last_login_at')
    search_fields = ('user__username', 'device_id')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'type', 'title', 'priority', 'read_at', 'created_at')
    list_filter = ('type', 'priority')
    search_fields = ('user__username', 'title')


admin.site.register(NotificationPreference)


@admin.register(SmsLog)
class SmsLogAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'phone', 'driver', 'status', 'created_at')
    list_filter = ('driver', 'status')


@admin.register(PushNotificationLog)
class PushNotificationLogAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'title', 'driver', 'status', 'created_at')
    list_filter = ('driver', 'status')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'ip', 'created_at')
    list_filter = ('action',)
    search_fields = ('action', 'user__username')
