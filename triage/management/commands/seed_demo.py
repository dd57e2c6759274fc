from datetime import date, timedelta

from django.core.management import call_command
from django.core.management.base import BaseCommand
from django.utils import timezone

from triage.models import Patient, User
from triage.services import workflow
from triage.services.intake import admit_patient

DEMO_PATIENTS = [
    # mrn, first, last, dob, gender, complaint, history, vitals, target state
    ("MRN-1001", "Walter", "Hughes", date(1951, 3, 2), "male", "Chest pain radiating to left arm for 1 hour",
     ["hypertension", "diabetes"], {"heart_rate": 112, "systolic_bp": 150, "diastolic_bp": 92,
                                     "respiratory_rate": 22, "oxygen_saturation": 95, "pain_level": 8}, "assigned"),
    ("MRN-1002", "Ana", "Lopez", date(1988, 7, 19), "female", "Abdominal pain and vomiting since yesterday",
     [], {"heart_rate": 96, "systolic_bp": 124, "diastolic_bp": 80, "respiratory_rate": 18,
          "oxygen_saturation": 98, "pain_level": 6}, "validated"),
    ("MRN-1003", "Priya", "Nair", date(1995, 1, 8), "female", "Ankle sprain after a fall",
     [], {"heart_rate": 78, "systolic_bp": 118, "diastolic_bp": 76, "respiratory_rate": 16,
          "oxygen_saturation": 99, "pain_level": 4}, "pending_validation"),
    ("MRN-1004", "George", "Baker", date(1940, 11, 30), "male", "Unresponsive at home, found by family",
     ["COPD", "CHF", "atrial fibrillation"], {"heart_rate": 38, "systolic_bp": 82, "diastolic_bp": 50,
                                              "respiratory_rate": 6, "oxygen_saturation": 84}, "acknowledged"),
    ("MRN-1005", "Lily", "Chen", date(2001, 5, 14), "female", "Sore throat for 3 days",
     [], None, "waiting"),
]


class Command(BaseCommand):
    help = "Create demo patients and cases spread across the triage workflow states."

    def handle(self, *args, **opts):
        call_command('ensure_demo_users', stdout=self.stdout)
        nurse = User.objects.get(username='nurse1')
        doctor = User.objects.get(username='doctor1')
        now = timezone.now()

        for i, (mrn, first, last, dob, gender, complaint, history, vitals, target) in enumerate(DEMO_PATIENTS):
            if Patient.objects.filter(mrn=mrn).exists():
                self.stdout.write(f"skip: {mrn} already present")
                continue
            _, case = admit_patient({
                'mrn': mrn, 'first_name': first, 'last_name': last, 'date_of_birth': dob,
                'gender': gender, 'chief_complaint': complaint, 'medical_history': history,
                'arrival_time': now - timedelta(minutes=15 * (len(DEMO_PATIENTS) - i)),
                'vitals': vitals,
            }, nurse, auto_draft=target != 'waiting')
            if target in ('validated', 'assigned', 'acknowledged'):
                case = workflow.validate_case(case, nurse, case.ai_draft_esi)
            if target in ('assigned', 'acknowledged'):
                case = workflow.assign_case(case, doctor, nurse)
            if target == 'acknowledged':
                case = workflow.acknowledge_case(case, doctor)
            self.stdout.write(self.style.SUCCESS(f"ok: {mrn} -> {case.status}"))
        self.stdout.write(self.style.SUCCESS("Demo data seeded."))
