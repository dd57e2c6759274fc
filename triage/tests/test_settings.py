import pytest

from triage.models import PhysicianSettings

pytestmark = pytest.mark.django_db

DEFAULTS = {
    'pushAlertsEnabled': True,
    'silentRoutingEnabled': True,
    'soundAlertsEnabled': True,
    'esi1Timeout': 2,
    'esi2Timeout': 5,
    'aiDraftingEnabled': True,
    'showConfidenceIndicators': True,
    'generateSBARSummaries': True,
}


def test_defaults_without_a_row(client_for, physician):
    r = client_for(physician).get('/api/settings')
    assert r.json() == {'ok': True, 'data': DEFAULTS}
    assert not PhysicianSettings.objects.filter(user=physician).exists()


def test_partial_update_upserts(client_for, physician):
    c = client_for(physician)
    r = c.put('/api/settings', {'esi1Timeout': 4, 'generateSBARSummaries': False}, format='json')
    assert r.status_code == 200
    data = r.json()['data']
    assert data['esi1Timeout'] == 4
    assert data['generateSBARSummaries'] is False
    assert data['esi2Timeout'] == 5

    row = PhysicianSettings.objects.get(user=physician)
    assert row.esi1_timeout == 4 and row.generate_sbar_summaries is False

    r = c.put('/api/settings', {'soundAlertsEnabled': False}, format='json')
    assert r.json()['data']['esi1Timeout'] == 4
    assert PhysicianSettings.objects.filter(user=physician).count() == 1


def test_out_of_range_timeout_is_400(client_for, physician):
    r = client_for(physician).put('/api/settings', {'esi1Timeout': 0}, format='json')
    assert r.status_code == 400
    r = client_for(physician).put('/api/settings', {'esi2Timeout': 61}, format='json')
    assert r.status_code == 400


def test_reset(client_for, physician):
    c = client_for(physician)
    c.put('/api/settings', {'esi1Timeout': 9, 'aiDraftingEnabled': False}, format='json')
    r = c.post('/api/settings/reset')
    assert r.json()['data'] == DEFAULTS


def test_settings_are_per_user(client_for, physician, nurse):
    client_for(physician).put('/api/settings', {'esi2Timeout': 12}, format='json')
    assert client_for(nurse).get('/api/settings').json()['data']['esi2Timeout'] == 5
