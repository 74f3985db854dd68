"""
Database models for the clinical backend.

These models capture the clinical workflow: patients' cardiovascular
assessments arriving from the mobile intake app, their validation by
clinicians, referrals to healthcare facilities, emergency alerts and
appointments.  The notification layer persists its in-app records and
mock delivery logs here as well.

Roles are plain Django auth groups and permissions are Django
permissions, so the custom permission codenames used by the API are
declared in the ``Meta`` of the model they guard.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.db import models


RISK_LEVEL_CHOICES = [
    ('low', 'Low'),
    ('moderate', 'Moderate'),
    ('high', 'High'),
]


def risk_level_for_score(score: int) -> str:
    """Map a 0-100 risk score onto the stored risk level."""
    if score >= 70:
        return 'high'
    if score >= 40:
        return 'moderate'
    return 'low'


class HealthcareFacility(models.Model):
    """A hospital, clinic or health centre that can receive referrals.

    Mostly reference data: facilities are seeded by administrators and
    read by the referral pipeline and the public mobile facility finder.
    """
    LEVEL_CHOICES = [
        ('primary', 'Primary'),
        ('secondary', 'Secondary'),
        ('tertiary', 'Tertiary'),
    ]
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=50, unique=True)
    type = models.CharField(max_length=50, blank=True)
    level = models.CharField(max_length=20, choices=LEVEL_CHOICES, default='primary', db_index=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    province = models.CharField(max_length=100, blank=True)
    region = models.CharField(max_length=100, blank=True, db_index=True)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)
    latitude = models.DecimalField(max_digits=10, decimal_places=8, null=True, blank=True)
    longitude = models.DecimalField(max_digits=11, decimal_places=8, null=True, blank=True)
    is_24_7 = models.BooleanField(default=False)
    has_emergency = models.BooleanField(default=False)
    bed_capacity = models.PositiveIntegerField(default=0)
    icu_capacity = models.PositiveIntegerField(default=0)
    current_bed_availability = models.PositiveIntegerField(default=0)
    is_accredited = models.BooleanField(default=False)
    accreditations = models.JSONField(default=list, blank=True)
    accepts_referrals = models.BooleanField(default=True, db_index=True)
    preferred_referral_types = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'healthcare facilities'

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class User(AbstractUser):
    """Custom user model for clinical staff and patients.

    Roles ('admin', 'cardiologist', 'nurse', ...) are Django auth groups
    so that they can be granted Django permissions as a bundle.
    """
    MFA_METHOD_CHOICES = [
        ('sms', 'SMS'),
    ]
    phone = models.CharField(max_length=32, blank=True)
    facility = models.ForeignKey(
        HealthcareFacility, null=True, blank=True, on_delete=models.SET_NULL, related_name='staff'
    )
    mfa_enabled = models.BooleanField(default=False)
    mfa_method = models.CharField(max_length=10, choices=MFA_METHOD_CHOICES, blank=True)

    @property
    def full_name(self) -> str:
        return self.get_full_name() or self.username

    def __str__(self) -> str:
        return self.username


class Assessment(models.Model):
    """A cardiovascular risk assessment submitted from the mobile app.

    Risk scores are produced by an external ML service and a rule-based
    engine; clinicians confirm or reject them, which fills the ``final_*``
    and validation fields.  Once archived the record is read-only.
    """
    STATUS_PENDING = 'pending'
    STATUS_VALIDATED = 'validated'
    STATUS_REJECTED = 'rejected'
    STATUS_IN_REVIEW = 'in_review'
    STATUS_REQUIRES_REFERRAL = 'requires_referral'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_VALIDATED, 'Validated'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_IN_REVIEW, 'In review'),
        (STATUS_REQUIRES_REFERRAL, 'Requires referral'),
    ]
    URGENCY_CHOICES = [
        ('routine', 'Routine'),
        ('urgent', 'Urgent'),
        ('emergency', 'Emergency'),
    ]

    external_id = models.CharField(max_length=64, unique=True)
    mobile_user_id = models.CharField(max_length=64, blank=True, db_index=True)
    patient_first_name = models.CharField(max_length=100, blank=True)
    patient_last_name = models.CharField(max_length=100, blank=True)
    patient_date_of_birth = models.DateField(null=True, blank=True)
    patient_sex = models.CharField(max_length=10, blank=True)
    patient_email = models.EmailField(blank=True)
    patient_phone = models.CharField(max_length=32, blank=True)
    assessment_date = models.DateTimeField(null=True, blank=True)
    region = models.CharField(max_length=100, blank=True, db_index=True)
    facility = models.ForeignKey(
        HealthcareFacility, null=True, blank=True, on_delete=models.SET_NULL, related_name='assessments'
    )

    ml_risk_score = models.PositiveSmallIntegerField(null=True, blank=True)
    ml_risk_level = models.CharField(max_length=20, choices=RISK_LEVEL_CHOICES, blank=True)
    rule_based_score = models.PositiveSmallIntegerField(null=True, blank=True)
    rule_based_level = models.CharField(max_length=20, choices=RISK_LEVEL_CHOICES, blank=True)
    final_risk_score = models.PositiveSmallIntegerField(null=True, blank=True)
    final_risk_level = models.CharField(max_length=20, choices=RISK_LEVEL_CHOICES, blank=True, db_index=True)
    urgency = models.CharField(max_length=20, choices=URGENCY_CHOICES, blank=True)
    recommended_action = models.TextField(blank=True)
    symptoms = models.JSONField(default=dict, blank=True)
    vital_signs = models.JSONField(default=dict, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    validated_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='validated_assessments'
    )
    validated_at = models.DateTimeField(null=True, blank=True)
    validation_notes = models.TextField(blank=True)
    validation_agrees_with_ml = models.BooleanField(null=True, blank=True)
    archived_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        permissions = [
            ('validate_assessment', 'Can validate or reject assessments'),
            ('export_assessment', 'Can export assessments'),
        ]
        indexes = [
            models.Index(fields=['status', 'created_at'], name='core_assess_status_3b1f0e_idx'),
        ]

    def __str__(self) -> str:
        return f"Assessment {self.external_id} ({self.status})"

    @property
    def patient_full_name(self) -> str:
        return f"{self.patient_first_name} {self.patient_last_name}".strip()

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    def is_high_risk(self) -> bool:
        return self.final_risk_level == 'high'

    def requires_referral(self) -> bool:
        return self.status == self.STATUS_REQUIRES_REFERRAL or self.is_high_risk()

    def save(self, *args, **kwargs):
        if self.pk:
            stored = Assessment.objects.filter(pk=self.pk).values_list('archived_at', flat=True).first()
            if stored is not None:
                raise ValidationError('Archived assessments are immutable')
        super().save(*args, **kwargs)


class ClinicalValidation(models.Model):
    """One clinician decision (validate or reject) on an assessment."""
    AGREEMENT_CHOICES = [
        ('complete_agreement', 'Complete agreement'),
        ('partial_agreement', 'Partial agreement'),
        ('significant_difference', 'Significant difference'),
        ('complete_disagreement', 'Complete disagreement'),
    ]
    assessment = models.ForeignKey(Assessment, on_delete=models.CASCADE, related_name='clinical_validations')
    doctor = models.ForeignKey(User, null=True, on_delete=models.SET_NULL, related_name='clinical_validations')
    original_ml_score = models.PositiveSmallIntegerField(null=True, blank=True)
    original_ml_level = models.CharField(max_length=20, blank=True)
    validated_score = models.PositiveSmallIntegerField()
    validated_level = models.CharField(max_length=20)
    agreement_level = models.CharField(max_length=30, choices=AGREEMENT_CHOICES)
    score_difference = models.IntegerField(null=True, blank=True)
    clinical_notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Validation of {self.assessment_id}: {self.agreement_level}"


class AssessmentRiskAdjustment(models.Model):
    """A clinician overriding the final risk score, with the reason given."""
    assessment = models.ForeignKey(Assessment, on_delete=models.CASCADE, related_name='risk_adjustments')
    adjusted_by = models.ForeignKey(User, null=True, on_delete=models.SET_NULL, related_name='risk_adjustments')
    old_risk_score = models.PositiveSmallIntegerField(null=True, blank=True)
    new_risk_score = models.PositiveSmallIntegerField()
    old_risk_level = models.CharField(max_length=20, blank=True)
    new_risk_level = models.CharField(max_length=20)
    score_difference = models.IntegerField(null=True, blank=True)
    justification = models.TextField()
    alert_triggered = models.BooleanField(default=False)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:
        return f"Adjustment of {self.assessment_id}: {self.old_risk_score} -> {self.new_risk_score}"


class AssessmentComment(models.Model):
    """Clinical note on an assessment.

    Edits never overwrite a note: each new version is a row whose
    ``parent`` is the first version, so the thread keeps its history.
    """
    VISIBILITY_CHOICES = [
        ('private', 'Private'),
        ('internal', 'Internal'),
        ('shared', 'Shared with patient'),
    ]
    assessment = models.ForeignKey(Assessment, on_delete=models.CASCADE, related_name='comments')
    user = models.ForeignKey(User, null=True, on_delete=models.SET_NULL, related_name='assessment_comments')
    comment = models.TextField()
    comment_type = models.CharField(max_length=30, default='clinical_note')
    visibility = models.CharField(max_length=10, choices=VISIBILITY_CHOICES, default='internal')
    parent = models.ForeignKey('self', null=True, blank=True, on_delete=models.CASCADE, related_name='versions')
    is_resolved = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Note #{self.pk} on {self.assessment_id} ({self.visibility})"


class Referral(models.Model):
    """Escalation of an assessment to a (usually higher level) facility."""
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('critical', 'Critical'),
    ]
    URGENCY_CHOICES = Assessment.URGENCY_CHOICES
    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_IN_TRANSIT = 'in_transit'
    STATUS_ARRIVED = 'arrived'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_REJECTED = 'rejected'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_IN_TRANSIT, 'In transit'),
        (STATUS_ARRIVED, 'Arrived'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    TERMINAL_STATUSES = {STATUS_COMPLETED, STATUS_REJECTED, STATUS_CANCELLED}

    assessment = models.ForeignKey(Assessment, on_delete=models.CASCADE, related_name='referrals')
    source_facility = models.ForeignKey(
        HealthcareFacility, null=True, blank=True, on_delete=models.SET_NULL, related_name='outgoing_referrals'
    )
    target_facility = models.ForeignKey(
        HealthcareFacility, null=True, blank=True, on_delete=models.SET_NULL, related_name='incoming_referrals'
    )
    referring_user = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='referrals_made'
    )
    assigned_doctor = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='referrals_assigned'
    )
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium', db_index=True)
    urgency = models.CharField(max_length=10, choices=URGENCY_CHOICES, default='routine')
    referral_type = models.CharField(max_length=100, blank=True)
    reason = models.TextField(blank=True)
    clinical_notes = models.TextField(blank=True)
    required_services = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    status_notes = models.TextField(blank=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    arrived_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Referral #{self.pk} ({self.priority}, {self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES


class ReferralHistory(models.Model):
    """Audit trail of referral state changes."""
    referral = models.ForeignKey(Referral, on_delete=models.CASCADE, related_name='history')
    user = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    action = models.CharField(max_length=50)
    previous_status = models.CharField(max_length=20, blank=True)
    new_status = models.CharField(max_length=20, blank=True)
    notes = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'referral history'

    def __str__(self) -> str:
        return f"{self.referral_id}: {self.action}"


class EmergencyAlert(models.Model):
    """A broadcast created by staff, e.g. a facility closure or outbreak."""
    SEVERITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('critical', 'Critical'),
    ]
    AUDIENCE_CHOICES = [
        ('all', 'All staff'),
        ('facility', 'Facility staff'),
    ]
    created_by = models.ForeignKey(User, null=True, on_delete=models.SET_NULL, related_name='emergency_alerts')
    title = models.CharField(max_length=255)
    message = models.TextField()
    severity = models.CharField(max_length=10, choices=SEVERITY_CHOICES, default='high')
    target_audience = models.CharField(max_length=10, choices=AUDIENCE_CHOICES, default='all')
    target_facility = models.ForeignKey(
        HealthcareFacility, null=True, blank=True, on_delete=models.SET_NULL, related_name='emergency_alerts'
    )
    expires_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    recipients_count = models.PositiveIntegerField(default=0)
    acknowledged_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.title} ({self.severity})"


class Appointment(models.Model):
    STATUS_CHOICES = [
        ('scheduled', 'Scheduled'),
        ('confirmed', 'Confirmed'),
        ('checked_in', 'Checked in'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('no_show', 'No show'),
        ('rescheduled', 'Rescheduled'),
    ]
    CLOSED_STATUSES = {'completed', 'cancelled', 'no_show', 'rescheduled'}
    TYPE_CHOICES = [
        ('consultation', 'Consultation'),
        ('follow_up', 'Follow-up'),
        ('diagnostic', 'Diagnostic'),
        ('emergency', 'Emergency'),
    ]
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='doctor_appointments'
    )
    facility = models.ForeignKey(
        HealthcareFacility, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments'
    )
    assessment = models.ForeignKey(
        Assessment, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments'
    )
    appointment_date = models.DateField()
    appointment_time = models.TimeField(null=True, blank=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='consultation')
    reason_for_visit = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='scheduled', db_index=True)
    status_notes = models.TextField(blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    checked_in_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    visit_summary = models.TextField(blank=True)
    next_steps = models.TextField(blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    cancellation_reason = models.TextField(blank=True)
    rescheduled_from = models.ForeignKey(
        'self', null=True, blank=True, on_delete=models.SET_NULL, related_name='rescheduled_to'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Appointment #{self.pk} {self.appointment_date}"

    @property
    def is_closed(self) -> bool:
        return self.status in self.CLOSED_STATUSES


class TrustedDevice(models.Model):
    """A device the user marked as trusted; one row per (user, device)."""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='trusted_devices')
    device_id = models.CharField(max_length=128)
    device_name = models.CharField(max_length=255, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, blank=True)
    last_login_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['user', 'device_id'], name='uniq_trusted_device_per_user'),
        ]

    def __str__(self) -> str:
        return f"{self.device_name or self.device_id} ({self.user_id})"


class Notification(models.Model):
    """In-app notification, written by the database channel."""
    TYPE_CHOICES = [
        ('message', 'Message'),
        ('referral', 'Referral'),
        ('assessment', 'Assessment'),
        ('appointment', 'Appointment'),
        ('alert', 'Alert'),
        ('system', 'System'),
        ('reminder', 'Reminder'),
    ]
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('normal', 'Normal'),
        ('high', 'High'),
        ('critical', 'Critical'),
    ]
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='system')
    title = models.CharField(max_length=255)
    body = models.TextField(blank=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='normal')
    data = models.JSONField(default=dict, blank=True)
    action_url = models.CharField(max_length=500, blank=True)
    read_at = models.DateTimeField(null=True, blank=True)
    related_assessment = models.ForeignKey(
        Assessment, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    related_referral = models.ForeignKey(
        Referral, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'read_at'], name='core_notifi_user_id_8c5a2d_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.type}: {self.title} -> {self.user_id}"


class NotificationPreference(models.Model):
    """Opt-in per (user, notification type, channel)."""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notification_preferences')
    notification_type = models.CharField(max_length=20)
    channel = models.CharField(max_length=20)
    is_enabled = models.BooleanField(default=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'notification_type', 'channel'], name='uniq_notification_preference'
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user_id}:{self.notification_type}:{self.channel}={self.is_enabled}"


class SmsLog(models.Model):
    user = models.ForeignKey(User, null=True, on_delete=models.SET_NULL, related_name='sms_logs')
    phone = models.CharField(max_length=32)
    subject = models.CharField(max_length=255, blank=True)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    driver = models.CharField(max_length=20)
    status = models.CharField(max_length=20, default='sent')
    external_id = models.CharField(max_length=128, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"sms {self.pk} -> {self.phone} ({self.status})"


class PushNotificationLog(models.Model):
    user = models.ForeignKey(User, null=True, on_delete=models.SET_NULL, related_name='push_logs')
    title = models.CharField(max_length=255)
    body = models.TextField(blank=True)
    data = models.JSONField(default=dict, blank=True)
    driver = models.CharField(max_length=20)
    status = models.CharField(max_length=20, default='sent')
    platform = models.CharField(max_length=20, default='web')
    device_token = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"push {self.pk} -> {self.user_id} ({self.status})"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    ip = models.GenericIPAddressField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='core_audite_action_5e7b91_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='core_audite_object__0d4c6a_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
