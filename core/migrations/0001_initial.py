import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

RISK_LEVELS = [('low', 'Low'), ('moderate', 'Moderate'), ('high', 'High')]
URGENCIES = [('routine', 'Routine'), ('urgent', 'Urgent'), ('emergency', 'Emergency')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='HealthcareFacility',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('code', models.CharField(max_length=50, unique=True)),
                ('type', models.CharField(blank=True, max_length=50)),
                ('level', models.CharField(choices=[('primary', 'Primary'), ('secondary', 'Secondary'),
                                                    ('tertiary', 'Tertiary')],
                                           db_index=True, default='primary', max_length=20)),
                ('address', models.CharField(blank=True, max_length=255)),
                ('city', models.CharField(blank=True, max_length=100)),
                ('province', models.CharField(blank=True, max_length=100)),
                ('region', models.CharField(blank=True, db_index=True, max_length=100)),
                ('phone', models.CharField(blank=True, max_length=32)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('latitude', models.DecimalField(blank=True, decimal_places=8, max_digits=10, null=True)),
                ('longitude', models.DecimalField(blank=True, decimal_places=8, max_digits=11, null=True)),
                ('is_24_7', models.BooleanField(default=False)),
                ('has_emergency', models.BooleanField(default=False)),
                ('bed_capacity', models.PositiveIntegerField(default=0)),
                ('icu_capacity', models.PositiveIntegerField(default=0)),
                ('current_bed_availability', models.PositiveIntegerField(default=0)),
                ('is_accredited', models.BooleanField(default=False)),
                ('accreditations', models.JSONField(blank=True, default=list)),
                ('accepts_referrals', models.BooleanField(db_index=True, default=True)),
                ('preferred_referral_types', models.JSONField(blank=True, default=list)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name_plural': 'healthcare facilities',
            },
        ),
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(
                    default=False,
                    help_text='Designates that this user has all permissions without explicitly assigning them.',
                    verbose_name='superuser status')),
                ('username', models.CharField(
                    error_messages={'unique': 'A user with that username already exists.'},
                    help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.',
                    max_length=150, unique=True,
                    validators=[django.contrib.auth.validators.UnicodeUsernameValidator()],
                    verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(
                    default=False, help_text='Designates whether the user can log into this admin site.',
                    verbose_name='staff status')),
                ('is_active', models.BooleanField(
                    default=True,
                    help_text='Designates whether this user should be treated as active. '
                              'Unselect this instead of deleting accounts.',
                    verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('phone', models.CharField(blank=True, max_length=32)),
                ('mfa_enabled', models.BooleanField(default=False)),
                ('mfa_method', models.CharField(blank=True, choices=[('sms', 'SMS')], max_length=10)),
                ('facility', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                                               related_name='staff', to='core.healthcarefacility')),
                ('groups', models.ManyToManyField(
                    blank=True,
                    help_text='The groups this user belongs to. A user will get all permissions granted to each '
                              'of their groups.',
                    related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(
                    blank=True, help_text='Specific permissions for this user.', related_name='user_set',
                    related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Assessment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('external_id', models.CharField(max_length=64, unique=True)),
                ('mobile_user_id', models.CharField(blank=True, db_index=True, max_length=64)),
                ('patient_first_name', models.CharField(blank=True, max_length=100)),
                ('patient_last_name', models.CharField(blank=True, max_length=100)),
                ('patient_date_of_birth', models.DateField(blank=True, null=True)),
                ('patient_sex', models.CharField(blank=True, max_length=10)),
                ('patient_email', models.EmailField(blank=True, max_length=254)),
                ('patient_phone', models.CharField(blank=True, max_length=32)),
                ('assessment_date', models.DateTimeField(blank=True, null=True)),
                ('region', models.CharField(blank=True, db_index=True, max_length=100)),
                ('ml_risk_score', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('ml_risk_level', models.CharField(blank=True, choices=RISK_LEVELS, max_length=20)),
                ('rule_based_score', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('rule_based_level', models.CharField(blank=True, choices=RISK_LEVELS, max_length=20)),
                ('final_risk_score', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('final_risk_level', models.CharField(blank=True, choices=RISK_LEVELS, db_index=True, max_length=20)),
                ('urgency', models.CharField(blank=True, choices=URGENCIES, max_length=20)),
                ('recommended_action', models.TextField(blank=True)),
                ('symptoms', models.JSONField(blank=True, default=dict)),
                ('vital_signs', models.JSONField(blank=True, default=dict)),
                ('status', models.CharField(
                    choices=[('pending', 'Pending'), ('validated', 'Validated'), ('rejected', 'Rejected'),
                             ('in_review', 'In review'), ('requires_referral', 'Requires referral')],
                    db_index=True, default='pending', max_length=20)),
                ('validated_at', models.DateTimeField(blank=True, null=True)),
                ('validation_notes', models.TextField(blank=True)),
                ('validation_agrees_with_ml', models.BooleanField(blank=True, null=True)),
                ('archived_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('facility', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                                               related_name='assessments', to='core.healthcarefacility')),
                ('validated_by', models.ForeignKey(blank=True, null=True,
                                                   on_delete=django.db.models.deletion.SET_NULL,
                                                   related_name='validated_assessments',
                                                   to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'permissions': [('validate_assessment', 'Can validate or reject assessments'),
                                ('export_assessment', 'Can export assessments')],
                'indexes': [models.Index(fields=['status', 'created_at'], name='core_assess_status_3b1f0e_idx')],
            },
        ),
        migrations.CreateModel(
            name='ClinicalValidation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('original_ml_score', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('original_ml_level', models.CharField(blank=True, max_length=20)),
                ('validated_score', models.PositiveSmallIntegerField()),
                ('validated_level', models.CharField(max_length=20)),
                ('agreement_level', models.CharField(
                    choices=[('complete_agreement', 'Complete agreement'),
                             ('partial_agreement', 'Partial agreement'),
                             ('significant_difference', 'Significant difference'),
                             ('complete_disagreement', 'Complete disagreement')],
                    max_length=30)),
                ('score_difference', models.IntegerField(blank=True, null=True)),
                ('clinical_notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('assessment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE,
                                                 related_name='clinical_validations', to='core.assessment')),
                ('doctor', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL,
                                             related_name='clinical_validations', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='Referral',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('priority', models.CharField(
                    choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('critical', 'Critical')],
                    db_index=True, default='medium', max_length=10)),
                ('urgency', models.CharField(choices=URGENCIES, default='routine', max_length=10)),
                ('referral_type', models.CharField(blank=True, max_length=100)),
                ('reason', models.TextField(blank=True)),
                ('clinical_notes', models.TextField(blank=True)),
                ('required_services', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(
                    choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('in_transit', 'In transit'),
                             ('arrived', 'Arrived'), ('in_progress', 'In progress'), ('completed', 'Completed'),
                             ('rejected', 'Rejected'), ('cancelled', 'Cancelled')],
                    db_index=True, default='pending', max_length=20)),
                ('status_notes', models.TextField(blank=True)),
                ('accepted_at', models.DateTimeField(blank=True, null=True)),
                ('arrived_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assessment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE,
                                                 related_name='referrals', to='core.assessment')),
                ('assigned_doctor', models.ForeignKey(blank=True, null=True,
                                                      on_delete=django.db.models.deletion.SET_NULL,
                                                      related_name='referrals_assigned',
                                                      to=settings.AUTH_USER_MODEL)),
                ('referring_user', models.ForeignKey(blank=True, null=True,
                                                     on_delete=django.db.models.deletion.SET_NULL,
                                                     related_name='referrals_made', to=settings.AUTH_USER_MODEL)),
                ('source_facility', models.ForeignKey(blank=True, null=True,
                                                      on_delete=django.db.models.deletion.SET_NULL,
                                                      related_name='outgoing_referrals',
                                                      to='core.healthcarefacility')),
                ('target_facility', models.ForeignKey(blank=True, null=True,
                                                      on_delete=django.db.models.deletion.SET_NULL,
                                                      related_name='incoming_referrals',
                                                      to='core.healthcarefacility')),
            ],
        ),
        migrations.CreateModel(
            name='ReferralHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(max_length=50)),
                ('previous_status', models.CharField(blank=True, max_length=20)),
                ('new_status', models.CharField(blank=True, max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('referral', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE,
                                               related_name='history', to='core.referral')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                                           to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'verbose_name_plural': 'referral history',
            },
        ),
        migrations.CreateModel(
            name='EmergencyAlert',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255)),
                ('message', models.TextField()),
                ('severity', models.CharField(
                    choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('critical', 'Critical')],
                    default='high', max_length=10)),
                ('target_audience', models.CharField(choices=[('all', 'All staff'), ('facility', 'Facility staff')],
                                                     default='all', max_length=10)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('recipients_count', models.PositiveIntegerField(default=0)),
                ('acknowledged_count', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL,
                                                 related_name='emergency_alerts', to=settings.AUTH_USER_MODEL)),
                ('target_facility', models.ForeignKey(blank=True, null=True,
                                                      on_delete=django.db.models.deletion.SET_NULL,
                                                      related_name='emergency_alerts',
                                                      to='core.healthcarefacility')),
            ],
        ),
        migrations.CreateModel(
            name='Appointment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('appointment_date', models.DateField()),
                ('appointment_time', models.TimeField(blank=True, null=True)),
                ('type', models.CharField(
                    choices=[('consultation', 'Consultation'), ('follow_up', 'Follow-up'),
                             ('diagnostic', 'Diagnostic'), ('emergency', 'Emergency')],
                    default='consultation', max_length=20)),
                ('reason_for_visit', models.TextField(blank=True)),
                ('status', models.CharField(
                    choices=[('scheduled', 'Scheduled'), ('confirmed', 'Confirmed'), ('completed', 'Completed'),
                             ('cancelled', 'Cancelled'), ('no_show', 'No show')],
                    db_index=True, default='scheduled', max_length=20)),
                ('confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('assessment', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                                                 related_name='appointments', to='core.assessment')),
                ('doctor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                                             related_name='doctor_appointments', to=settings.AUTH_USER_MODEL)),
                ('facility', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                                               related_name='appointments', to='core.healthcarefacility')),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE,
                                              related_name='appointments', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='TrustedDevice',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('device_id', models.CharField(max_length=128)),
                ('device_name', models.CharField(blank=True, max_length=255)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.CharField(blank=True, max_length=500)),
                ('last_login_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE,
                                           related_name='trusted_devices', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'constraints': [models.UniqueConstraint(fields=('user', 'device_id'),
                                                        name='uniq_trusted_device_per_user')],
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(
                    choices=[('message', 'Message'), ('referral', 'Referral'), ('assessment', 'Assessment'),
                             ('appointment', 'Appointment'), ('alert', 'Alert'), ('system', 'System'),
                             ('reminder', 'Reminder')],
                    default='system', max_length=20)),
                ('title', models.CharField(max_length=255)),
                ('body', models.TextField(blank=True)),
                ('priority', models.CharField(
                    choices=[('low', 'Low'), ('normal', 'Normal'), ('high', 'High'), ('critical', 'Critical')],
                    default='normal', max_length=10)),
                ('data', models.JSONField(blank=True, default=dict)),
                ('action_url', models.CharField(blank=True, max_length=500)),
                ('read_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('related_assessment', models.ForeignKey(blank=True, null=True,
                                                         on_delete=django.db.models.deletion.SET_NULL,
                                                         related_name='+', to='core.assessment')),
                ('related_referral', models.ForeignKey(blank=True, null=True,
                                                       on_delete=django.db.models.deletion.SET_NULL,
                                                       related_name='+', to='core.referral')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE,
                                           related_name='notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['user', 'read_at'], name='core_notifi_user_id_8c5a2d_idx')],
            },
        ),
        migrations.CreateModel(
            name='NotificationPreference',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('notification_type', models.CharField(max_length=20)),
                ('channel', models.CharField(max_length=20)),
                ('is_enabled', models.BooleanField(default=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE,
                                           related_name='notification_preferences', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'constraints': [models.UniqueConstraint(fields=('user', 'notification_type', 'channel'),
                                                        name='uniq_notification_preference')],
            },
        ),
        migrations.CreateModel(
            name='SmsLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('phone', models.CharField(max_length=32)),
                ('subject', models.CharField(blank=True, max_length=255)),
                ('message', models.TextField()),
                ('data', models.JSONField(blank=True, default=dict)),
                ('driver', models.CharField(max_length=20)),
                ('status', models.CharField(default='sent', max_length=20)),
                ('external_id', models.CharField(blank=True, max_length=128)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL,
                                           related_name='sms_logs', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='PushNotificationLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255)),
                ('body', models.TextField(blank=True)),
                ('data', models.JSONField(blank=True, default=dict)),
                ('driver', models.CharField(max_length=20)),
                ('status', models.CharField(default='sent', max_length=20)),
                ('platform', models.CharField(default='web', max_length=20)),
                ('device_token', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL,
                                           related_name='push_logs', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='AuditEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(max_length=64)),
                ('object_type', models.CharField(blank=True, max_length=64, null=True)),
                ('object_id', models.IntegerField(blank=True, null=True)),
                ('detail', models.JSONField(blank=True, default=dict)),
                ('ip', models.GenericIPAddressField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                                           to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['action', 'created_at'], name='core_audite_action_5e7b91_idx'),
                    models.Index(fields=['object_type', 'object_id', 'created_at'],
                                 name='core_audite_object__0d4c6a_idx'),
                ],
            },
        ),
    ]
