from oldly import db
from oldly.models import Ranking, User


def _play_and_finish(client, deck_id, card_id, song_guess):
    game = client.post('/api/game/start', json={'deck_id': deck_id}).get_json()['game']
    client.post(f"/api/game/{game['id']}/round", json={'card_id': card_id, 'song_guess': song_guess})
    return client.post(f"/api/game/{game['id']}/finish").get_json()


def test_deck_and_global_rankings(auth_client, catalog):
    _play_and_finish(auth_client, catalog['deck_id'], catalog['hard_card_id'], 'Alarma entre los angeles')
    _play_and_finish(auth_client, catalog['deck_id'], catalog['easy_card_id'], 'Mil horas')
    _play_and_finish(auth_client, catalog['other_deck_id'], catalog['foreign_card_id'], 'nope')

    # a second player with a lower total on the same deck
    db.session.add(Ranking(user_id=catalog['stranger_id'], deck_id=catalog['deck_id'], points_total=1, games_played=1))
    db.session.commit()

    res = auth_client.get(f"/api/rankings/?deck_id={catalog['deck_id']}")
    assert res.status_code == 200
    rows = res.get_json()['rankings']
    assert [(r['rank'], r['user']['firstname'], r['points_total'], r['games_played']) for r in rows] == [
        (1, 'Ana', 3, 2),
        (2, 'Bruno', 1, 1),
    ]

    body = auth_client.get('/api/rankings/').get_json()
    assert body['type'] == 'global'
    top = body['rankings'][0]
    assert top['user']['id'] == catalog['user_id']
    # the album-less foreign card still earns a point for leaving the album blank
    assert (top['points_total'], top['games_played'], top['decks_played']) == (4, 3, 2)

    paged = auth_client.get('/api/rankings/?limit=1&offset=1').get_json()
    assert [r['rank'] for r in paged['rankings']] == [2]
    assert paged['pagination'] == {'limit': 1, 'offset': 1}


def test_inactive_users_are_hidden_from_rankings(auth_client, catalog):
    db.session.add(Ranking(user_id=catalog['stranger_id'], deck_id=catalog['deck_id'], points_total=50, games_played=3))
    db.session.get(User, catalog['stranger_id']).is_active = False
    db.session.commit()
    rows = auth_client.get(f"/api/rankings/?deck_id={catalog['deck_id']}").get_json()['rankings']
    assert rows == []


def test_user_rankings_summary(auth_client, catalog):
    _play_and_finish(auth_client, catalog['deck_id'], catalog['easy_card_id'], 'Mil horas')
    res = auth_client.get(f"/api/rankings/user/{catalog['user_id']}")
    assert res.status_code == 200
    summary = res.get_json()['summary']
    assert summary == {'total_points': 1, 'total_games': 1, 'decks_played': 1, 'global_rank': 1}

    res = auth_client.get(f"/api/rankings/user/{catalog['stranger_id']}")
    assert res.status_code == 403


def test_deck_top_players(client, catalog):
    db.session.add(Ranking(user_id=catalog['user_id'], deck_id=catalog['deck_id'], points_total=10, games_played=2))
    db.session.add(Ranking(user_id=catalog['stranger_id'], deck_id=catalog['deck_id'], points_total=20, games_played=1))
    db.session.commit()
    body = client.get(f"/api/rankings/deck/{catalog['deck_id']}/top?limit=1").get_json()
    assert body['deck']['id'] == catalog['deck_id']
    assert [p['user']['firstname'] for p in body['top_players']] == ['Bruno']

    assert client.get('/api/rankings/deck/99999/top').status_code == 404


def test_invalid_pagination(client, catalog):
    res = client.get('/api/rankings/?limit=zero')
    assert res.status_code == 400
    assert res.get_json()['code'] == 'INVALID_PAGINATION'
