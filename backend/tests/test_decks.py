def _register(client, email='nueva@oldly.test'):
    res = client.post('/register', json={
        'email': email, 'password': 'secret1', 'firstname': 'Nora', 'lastname': 'Sosa',
    })
    assert res.status_code == 201
    return res.get_json()['user']


def test_list_decks_shows_active_decks_and_access(client, auth_client, catalog):
    decks = {d['id']: d for d in auth_client.get('/api/decks/').get_json()['decks']}
    assert catalog['inactive_deck_id'] not in decks
    assert decks[catalog['deck_id']]['card_count'] == 3
    assert decks[catalog['empty_deck_id']]['card_count'] == 0
    assert all(d['has_access'] for d in decks.values())

    client.post('/logout')
    anonymous = client.get('/api/decks/?theme=80s').get_json()['decks']
    assert [(d['id'], d['has_access']) for d in anonymous] == [(catalog['deck_id'], False)]


def test_get_deck(client, catalog):
    body = client.get(f"/api/decks/{catalog['other_deck_id']}").get_json()
    assert body['deck']['title'] == 'Movies'
    assert body['deck']['card_count'] == 1
    assert client.get(f"/api/decks/{catalog['inactive_deck_id']}").status_code == 404


def test_new_user_activates_deck_then_plays(client, catalog):
    _register(client)
    res = client.post('/api/game/start', json={'deck_id': catalog['deck_id']})
    assert res.status_code == 403
    assert res.get_json()['code'] == 'DECK_ACCESS_DENIED'

    res = client.post(f"/api/decks/{catalog['deck_id']}/activate")
    assert res.status_code == 201
    assert res.get_json()['created'] is True

    # activating again changes nothing
    res = client.post(f"/api/decks/{catalog['deck_id']}/activate")
    assert res.status_code == 200
    assert res.get_json()['created'] is False

    res = client.post('/api/game/start', json={'deck_id': catalog['deck_id']})
    assert res.status_code == 201
    assert res.get_json()['game']['status'] == 'started'


def test_activate_requires_login_and_active_deck(client, catalog):
    assert client.post(f"/api/decks/{catalog['deck_id']}/activate").status_code == 401
    _register(client)
    res = client.post(f"/api/decks/{catalog['inactive_deck_id']}/activate")
    assert res.status_code == 404
    assert res.get_json()['code'] == 'DECK_NOT_FOUND'
    assert client.post('/api/decks/99999/activate').status_code == 404
