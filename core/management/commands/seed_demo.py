"""
Populate the database with demo facilities, staff and assessments.
"""
import random
from datetime import timedelta

from django.contrib.auth.hashers import make_password
from django.contrib.auth.models import Group
from django.core.management import call_command
from django.core.management.base import BaseCommand
from django.utils import timezone

from core.models import Assessment, HealthcareFacility, User, risk_level_for_score
from core.roles import ADMIN, CARDIOLOGIST, DOCTOR, HEALTH_WORKER, NURSE
from core.services.assessments import new_external_id

FACILITIES = [
    {'code': 'PHC-001', 'name': 'Riverside Health Centre', 'level': 'primary', 'region': 'North',
     'latitude': '-1.28333000', 'longitude': '36.81667000'},
    {'code': 'DH-010', 'name': 'North District Hospital', 'level': 'secondary', 'region': 'North',
     'latitude': '-1.26000000', 'longitude': '36.80000000', 'has_emergency': True},
    {'code': 'RH-100', 'name': 'Central Cardiac Institute', 'level': 'tertiary', 'region': 'Central',
     'latitude': '-1.30000000', 'longitude': '36.85000000', 'has_emergency': True, 'is_24_7': True},
]

STAFF = [
    ('admin1', ADMIN),
    ('cardio1', CARDIOLOGIST),
    ('doctor1', DOCTOR),
    ('nurse1', NURSE),
    ('chw1', HEALTH_WORKER),
]


class Command(BaseCommand):
    help = 'Populate database with demo data'

    def add_arguments(self, parser):
        parser.add_argument('--assessments', type=int, default=20)

    def handle(self, *args, **options):
        call_command('ensure_roles', stdout=self.stdout)
        facilities = self.create_facilities()
        self.create_staff(facilities)
        self.create_assessments(options['assessments'], facilities)
        self.stdout.write(self.style.SUCCESS('Demo data created.'))

    def create_facilities(self):
        facilities = []
        for data in FACILITIES:
            data = dict(data)
            facility, _ = HealthcareFacility.objects.get_or_create(code=data.pop('code'), defaults=data)
            facilities.append(facility)
            self.stdout.write(f'facility: {facility}')
        return facilities

    def create_staff(self, facilities):
        for i, (username, role) in enumerate(STAFF):
            user, _ = User.objects.get_or_create(
                username=username,
                defaults={
                    'email': f'{username}@example.com',
                    'password': make_password('123456'),
                    'first_name': username.rstrip('0123456789').capitalize(),
                    'facility': facilities[i % len(facilities)],
                },
            )
            user.groups.add(Group.objects.get(name=role))
            self.stdout.write(f'staff: {user.username} ({role})')

    def create_assessments(self, count, facilities):
        now = timezone.now()
        for _ in range(count):
            score = random.randint(5, 95)
            level = risk_level_for_score(score)
            Assessment.objects.create(
                external_id=new_external_id(),
                patient_first_name=random.choice(['Amina', 'Brian', 'Chen', 'Dana', 'Esi']),
                patient_last_name=random.choice(['Otieno', 'Mwangi', 'Li', 'Cruz', 'Mensah']),
                patient_sex=random.choice(['male', 'female']),
                assessment_date=now - timedelta(days=random.randint(0, 60)),
                region=random.choice(['North', 'Central']),
                facility=random.choice(facilities),
                ml_risk_score=score,
                ml_risk_level=level,
                final_risk_score=score,
                final_risk_level=level,
                vital_signs={'systolic_bp': random.randint(100, 180), 'diastolic_bp': random.randint(60, 110),
                             'heart_rate': random.randint(55, 110)},
            )
        self.stdout.write(f'assessments: {count}')
