from draftroom.services.draft.session import Join
from conftest import board_rows, participant_list


def open_room(client, **overrides):
    body = {
        'room_id': 'ABC123',
        'contest_type': 'classic',
        'participants': participant_list(),
        'player_board': board_rows(),
    }
    body.update(overrides)
    return client.post('/api/drafts', json=body)


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert res.get_json()['rooms'] == 0


def test_open_room(client):
    res = open_room(client)
    assert res.status_code == 201
    data = res.get_json()
    assert data['room_id'] == 'ABC123'
    state = data['state']
    assert state['status'] == 'waiting'
    assert state['totalPlayers'] == 5
    assert state['connectedPlayers'] == 0
    assert len(state['draftOrder']) == 25


def test_open_room_generates_code(client):
    res = open_room(client, room_id=None)
    assert res.status_code == 201
    code = res.get_json()['room_id']
    assert len(code) == 6 and code == code.upper()


def test_open_room_requires_setup(client):
    res = client.post('/api/drafts', json={'participants': participant_list()})
    assert res.status_code == 400
    res = client.post('/api/drafts', json={'player_board': board_rows()})
    assert res.status_code == 400


def test_open_room_rejects_bad_board(client):
    rows = board_rows()
    rows[0][0]['position'] = 'K'
    res = open_room(client, player_board=rows)
    assert res.status_code == 400


def test_open_room_wrong_size(client):
    res = open_room(client, participants=participant_list(3))
    assert res.status_code == 400
    assert res.get_json()['code'] == 'invalid_participant_count'


def test_open_room_fills_with_bots(client):
    res = open_room(client, participants=participant_list(2), fill_with_bots=True)
    assert res.status_code == 201
    teams = res.get_json()['state']['teams']
    assert [t['isBot'] for t in teams] == [False, False, True, True, True]


def test_room_code_in_use(client):
    assert open_room(client).status_code == 201
    res = open_room(client, room_id='abc123')
    assert res.status_code == 409
    assert res.get_json()['code'] == 'room_already_exists'


def test_state_lookup_is_case_insensitive(client):
    open_room(client)
    res = client.get('/api/drafts/abc123/state')
    assert res.status_code == 200
    assert res.get_json()['id'] == 'ABC123'


def test_state_unknown_room(client):
    res = client.get('/api/drafts/NOPE/state')
    assert res.status_code == 404
    assert res.get_json()['code'] == 'session_not_found'


def test_results_saved_on_completion(flask_app, client):
    people = participant_list(1)
    open_room(client, participants=people, fill_with_bots=True, contest_type='kingpin')
    assert client.get('/api/drafts/ABC123/results').status_code == 404

    registry = flask_app.extensions['draft_rooms']
    room = registry.get('ABC123')
    registry.submit('ABC123', Join('u0'))
    for _ in range(1000):
        room.tick()
        if room.session.is_complete:
            break
    assert room.session.is_complete

    # Completed rooms are retired at once with RESULT_HOLD_SEC = 0
    assert 'ABC123' not in registry
    assert client.get('/api/drafts/ABC123/state').status_code == 404

    res = client.get('/api/drafts/ABC123/results')
    assert res.status_code == 200
    rows = res.get_json()
    # Bot seats are not persisted
    assert [r['user_id'] for r in rows] == ['u0']
    assert rows[0]['contest_type'] == 'kingpin'
    assert set(rows[0]['roster']) == {'QB', 'RB', 'WR', 'TE', 'FLEX'}
    assert 1 <= rows[0]['rank'] <= 5


def test_close_room(client):
    open_room(client)
    res = client.delete('/api/drafts/ABC123')
    assert res.status_code == 200
    assert client.get('/api/drafts/ABC123/state').status_code == 404
    assert client.delete('/api/drafts/ABC123').status_code == 404
