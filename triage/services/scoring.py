"""
Rule-based ESI draft scoring.

``draft_triage`` walks the ESI v4 decision points against the chief
complaint and the latest vitals and returns a ``TriageDraft`` the
clinician validates or overrides.  Nothing here touches the network or
the database; the caller persists the result.

Decision points, in order:

1. life-saving intervention (critical vitals or an immediate-threat
   complaint) -> ESI 1
2. high risk (high-risk complaint, severe pain, danger-zone vitals)
   -> ESI 2
3. predicted resources from the complaint, plus one for two or more
   comorbidities: >=2 -> ESI 3, 1 -> ESI 4, 0 -> ESI 5
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

IMMEDIATE_KEYWORDS = (
    'cardiac arrest',
    'pulseless',
    'unresponsive',
    'not breathing',
    'apnea',
    'anaphylaxis',
    'active seizure',
    'seizing',
    'massive bleeding',
    'choking',
)

HIGH_RISK_KEYWORDS = (
    'chest pain',
    'stroke',
    'facial droop',
    'slurred speech',
    'suicidal',
    'homicidal',
    'shortness of breath',
    'difficulty breathing',
    'overdose',
    'altered mental',
    'confusion',
    'worst headache',
    'syncope',
    'fainted',
    'vomiting blood',
    'sepsis',
    'testicular pain',
)

# complaint keyword -> predicted number of ED resources (labs, imaging, IV ...)
RESOURCE_KEYWORDS = {
    'abdominal pain': 2,
    'fracture': 2,
    'fall': 2,
    'head injury': 2,
    'kidney stone': 2,
    'flank pain': 2,
    'dehydration': 2,
    'vomiting': 1,
    'fever': 1,
    'laceration': 1,
    'back pain': 1,
    'headache': 1,
    'dizziness': 1,
    'urinary': 1,
    'ankle': 1,
    'sprain': 1,
    'cough': 0,
    'sore throat': 0,
    'rash': 0,
    'earache': 0,
    'refill': 0,
}

RECOMMENDATIONS = {
    1: 'Immediate resuscitation bay placement with physician at bedside.',
    2: 'Emergent physician evaluation within 10 minutes; start critical workup protocol.',
    3: 'Place in acute care area; start urgent workup protocol.',
    4: 'Fast-track evaluation; basic workup as indicated.',
    5: 'Fast-track evaluation; no diagnostic resources anticipated.',
}

_TIMELINE_RE = re.compile(
    r'(?:for|x|since|over)\s+(?:the\s+(?:past|last)\s+)?'
    r'(\d+|a|an|one|two|three|several|few)?\s*(minutes?|mins?|hours?|hrs?|days?|weeks?|months?|yesterday|today|this morning|last night)',
    re.IGNORECASE,
)


@dataclass
class TriageDraft:
    esi: int
    confidence: int
    extracted_symptoms: list[str] = field(default_factory=list)
    comorbidities: list[str] = field(default_factory=list)
    timeline: str = ''
    influencing_factors: list[dict] = field(default_factory=list)
    situation: str = ''
    background: str = ''
    assessment: str = ''
    recommendation: str = ''


def _factor(factor: str, impact: str, category: str) -> dict:
    return {'factor': factor, 'impact': impact, 'category': category}


def _num(value) -> Optional[float]:
    return float(value) if value is not None else None


def _matches(text: str, keywords) -> list[str]:
    return [k for k in keywords if k in text]


def _extract_timeline(complaint: str) -> str:
    m = _TIMELINE_RE.search(complaint or '')
    if not m:
        return 'Onset not documented'
    return f"Onset: {m.group(0).strip()}"


def _read_vitals(vitals) -> dict:
    keys = ('heart_rate', 'systolic_bp', 'diastolic_bp', 'respiratory_rate',
            'temperature', 'oxygen_saturation', 'pain_level')
    return {k: _num(getattr(vitals, k, None)) for k in keys} if vitals is not None else dict.fromkeys(keys)


def _vitals_missing(v: dict) -> bool:
    return all(v[k] is None for k in ('heart_rate', 'systolic_bp', 'respiratory_rate', 'oxygen_saturation'))


def _critical_vitals(v: dict) -> list[str]:
    found = []
    if v['oxygen_saturation'] is not None and v['oxygen_saturation'] < 90:
        found.append(f"SpO2 {v['oxygen_saturation']:.0f}%")
    if v['systolic_bp'] is not None and v['systolic_bp'] < 90:
        found.append(f"SBP {v['systolic_bp']:.0f} mmHg")
    hr = v['heart_rate']
    if hr is not None and (hr > 150 or hr < 40):
        found.append(f"HR {hr:.0f} bpm")
    rr = v['respiratory_rate']
    if rr is not None and (rr > 30 or rr < 8):
        found.append(f"RR {rr:.0f}/min")
    return found


def _danger_zone_vitals(v: dict, age: int) -> list[str]:
    found = []
    if v['heart_rate'] is not None and v['heart_rate'] > 100:
        found.append(f"HR {v['heart_rate']:.0f} bpm")
    if v['respiratory_rate'] is not None and v['respiratory_rate'] > 20:
        found.append(f"RR {v['respiratory_rate']:.0f}/min")
    if v['oxygen_saturation'] is not None and v['oxygen_saturation'] < 92:
        found.append(f"SpO2 {v['oxygen_saturation']:.0f}%")
    temp = v['temperature']
    if temp is not None and (temp >= 104 or (age >= 65 and temp >= 100.4)):
        found.append(f"Temp {temp:.1f}F")
    return found


def _borderline_vitals(v: dict) -> list[str]:
    """Mildly abnormal values that pull against a low-acuity decision."""
    found = []
    if v['heart_rate'] is not None and 90 < v['heart_rate'] <= 100:
        found.append(f"HR {v['heart_rate']:.0f} bpm")
    if v['oxygen_saturation'] is not None and 92 <= v['oxygen_saturation'] < 95:
        found.append(f"SpO2 {v['oxygen_saturation']:.0f}%")
    if v['temperature'] is not None and 100.4 <= v['temperature'] < 104:
        found.append(f"Temp {v['temperature']:.1f}F")
    return found


def _vitals_line(v: dict) -> str:
    if _vitals_missing(v):
        return 'Vitals not recorded.'

    def fmt(value, pattern='.0f'):
        return 'n/a' if value is None else format(value, pattern)

    return (
        f"HR {fmt(v['heart_rate'])}, BP {fmt(v['systolic_bp'])}/{fmt(v['diastolic_bp'])}, "
        f"RR {fmt(v['respiratory_rate'])}, SpO2 {fmt(v['oxygen_saturation'])}%, "
        f"Temp {fmt(v['temperature'], '.1f')}F, pain {fmt(v['pain_level'])}/10."
    )


def draft_triage(patient, vitals, *, include_sbar: bool = True) -> TriageDraft:
    """Score ``patient`` with its ``vitals`` (may be ``None``) into a draft ESI."""
    complaint = (patient.chief_complaint or '').strip()
    text = complaint.lower()
    age = patient.age
    v = _read_vitals(vitals)
    missing = _vitals_missing(v)

    comorbidities = [str(c).strip() for c in (patient.medical_history or []) if str(c).strip()]
    immediate = _matches(text, IMMEDIATE_KEYWORDS)
    high_risk = _matches(text, HIGH_RISK_KEYWORDS)
    resource_hits = _matches(text, RESOURCE_KEYWORDS)
    symptoms = immediate + high_risk + resource_hits or ([complaint[:80]] if complaint else [])

    factors: list[dict] = []
    conflicts = 0

    critical = _critical_vitals(v)
    danger = _danger_zone_vitals(v, age)
    severe_pain = v['pain_level'] is not None and v['pain_level'] >= 8

    if critical or immediate:
        esi = 1
        base = 90
        reason = 'life-saving intervention criteria'
        factors += [_factor(f"Critical vital: {c}", 'increases', 'vital') for c in critical]
        factors += [_factor(f"Immediate threat: {k}", 'increases', 'symptom') for k in immediate]
        if immediate and not critical and not missing:
            conflicts += 1
            factors.append(_factor('Vital signs not in critical range', 'decreases', 'vital'))
        if critical and not (immediate or high_risk):
            conflicts += 1
            factors.append(_factor('Chief complaint not high-risk', 'decreases', 'symptom'))
    elif high_risk or severe_pain or danger:
        esi = 2
        base = 90
        reason = 'high-risk presentation'
        factors += [_factor(f"High-risk complaint: {k}", 'increases', 'symptom') for k in high_risk]
        factors += [_factor(f"Danger-zone vital: {d}", 'increases', 'vital') for d in danger]
        if severe_pain:
            factors.append(_factor(f"Severe pain {v['pain_level']:.0f}/10", 'increases', 'symptom'))
        if high_risk and not danger and not missing:
            conflicts += 1
            factors.append(_factor('Vital signs outside danger zone', 'decreases', 'vital'))
        if danger and not (high_risk or severe_pain):
            conflicts += 1
            factors.append(_factor('Chief complaint not high-risk', 'decreases', 'symptom'))
    else:
        resources = max((RESOURCE_KEYWORDS[k] for k in resource_hits), default=0)
        factors += [
            _factor(f"Complaint suggests {RESOURCE_KEYWORDS[k]} resource(s): {k}", 'neutral', 'symptom')
            for k in resource_hits
        ]
        if len(comorbidities) >= 2:
            resources += 1
            factors.append(_factor(f"Multiple comorbidities ({len(comorbidities)})", 'increases', 'history'))
        esi = 3 if resources >= 2 else 4 if resources == 1 else 5
        base = 75
        reason = f"{resources} predicted resource(s)"
        for b in _borderline_vitals(v):
            conflicts += 1
            factors.append(_factor(f"Borderline vital: {b}", 'increases', 'vital'))

    if age >= 65:
        factors.append(_factor(f"Age {age}", 'increases', 'demographic'))
    if missing:
        factors.append(_factor('Vital signs missing', 'neutral', 'vital'))

    confidence = base - 5 * conflicts - (15 if missing else 0)
    confidence = max(50, min(98, confidence))

    timeline = _extract_timeline(complaint)
    draft = TriageDraft(
        esi=esi,
        confidence=confidence,
        extracted_symptoms=symptoms,
        comorbidities=comorbidities,
        timeline=timeline,
        influencing_factors=factors,
    )
    if include_sbar:
        draft.situation = f"{age}yo {patient.gender} presenting with {complaint or 'unspecified complaint'}. {timeline}."
        background = [f"History: {', '.join(comorbidities) or 'none reported'}."]
        if patient.medications:
            background.append(f"Medications: {', '.join(map(str, patient.medications))}.")
        if patient.allergies:
            background.append(f"Allergies: {', '.join(map(str, patient.allergies))}.")
        if patient.is_returning:
            background.append('Returning patient.')
        draft.background = ' '.join(background)
        draft.assessment = f"{_vitals_line(v)} Draft ESI {esi} ({reason})."
        draft.recommendation = RECOMMENDATIONS[esi]
    return draft
