"""
Workup order protocols keyed by ESI level.

``critical`` covers ESI 1-2, ``urgent`` ESI 3 and ``standard`` ESI 4-5.
"""
from __future__ import annotations

ORDER_PROTOCOLS: dict[str, dict] = {
    'critical': {
        'name': 'Critical/Emergent Protocol',
        'description': 'ESI 1-2: Immediate assessment orders',
        'categories': [
            {'name': 'Labs', 'orders': [
                'CBC', 'BMP', 'Cardiac Enzymes (Troponin)', 'Coagulation Panel (PT/INR/PTT)',
                'Lactate', 'ABG', 'Type & Screen',
            ]},
            {'name': 'Imaging', 'orders': [
                '12-Lead ECG', 'Chest X-Ray (Portable)', 'CT Head (if AMS)', 'CT Angiography (if PE suspected)',
            ]},
            {'name': 'Medications', 'orders': [
                'IV Access (18G or larger)', 'NS 1L Bolus', 'Aspirin 325mg (chest pain protocol)',
                'Ondansetron 4mg IV PRN',
            ]},
            {'name': 'Monitoring', 'orders': [
                'Continuous Cardiac Telemetry', 'Continuous Pulse Oximetry', 'Vitals q5min',
                'Foley Catheter (strict I/O)',
            ]},
        ],
    },
    'urgent': {
        'name': 'Urgent Protocol',
        'description': 'ESI 3: Standard workup orders',
        'categories': [
            {'name': 'Labs', 'orders': [
                'CBC', 'BMP', 'Urinalysis', 'Lipase (abdominal pain)', 'Pregnancy Test (if applicable)',
            ]},
            {'name': 'Imaging', 'orders': [
                'X-Ray (site specific)', 'Ultrasound (if indicated)', 'CT Abdomen/Pelvis (if indicated)',
            ]},
            {'name': 'Medications', 'orders': ['IV Access', 'NS 500mL', 'Pain Management PRN', 'Anti-emetic PRN']},
        ],
    },
    'standard': {
        'name': 'Standard Protocol',
        'description': 'ESI 4-5: Basic workup orders',
        'categories': [
            {'name': 'Labs', 'orders': ['CBC', 'BMP', 'Urinalysis']},
            {'name': 'Imaging', 'orders': ['X-Ray (if indicated)']},
        ],
    },
}


def protocol_key(esi: int) -> str:
    if esi <= 2:
        return 'critical'
    if esi == 3:
        return 'urgent'
    return 'standard'


def protocol_for(esi: int) -> dict:
    key = protocol_key(esi)
    return {'key': key, **ORDER_PROTOCOLS[key]}


def all_orders(esi: int) -> list[str]:
    return [o for cat in ORDER_PROTOCOLS[protocol_key(esi)]['categories'] for o in cat['orders']]


def default_orders(esi: int) -> list[str]:
    """Initial selection: every lab for critical cases, the first two otherwise."""
    key = protocol_key(esi)
    labs = next(c['orders'] for c in ORDER_PROTOCOLS[key]['categories'] if c['name'] == 'Labs')
    return list(labs) if key == 'critical' else list(labs[:2])


def validate_orders(esi: int, orders: list[str]) -> list[str]:
    """Return orders that are not part of the protocol for ``esi``."""
    allowed = set(all_orders(esi))
    return [o for o in orders if o not in allowed]
