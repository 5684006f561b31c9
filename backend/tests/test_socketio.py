def _payloads(received, name):
    return [pkt['args'][0] for pkt in received if pkt['name'] == name]


def _names(received):
    return [pkt['name'] for pkt in received]


def _create(test_client):
    test_client.emit('create-session', {'displayData': {}})
    return _payloads(test_client.get_received(), 'session-created')[0]['sessionId']


def test_socket_connect_announces_identity(connect):
    sio_client, connection_id = connect()
    assert sio_client.is_connected()
    assert connection_id


def test_ping_pong(connect):
    sio_client, _ = connect()
    sio_client.emit('ping', {'t': 5})
    assert _payloads(sio_client.get_received(), 'pong') == [{'t': 5}]


def test_two_player_game_scenario(connect):
    alice, alice_id = connect()
    bob, bob_id = connect()

    session_id = _create(alice)

    bob.emit('join-session', {'sessionId': session_id, 'displayData': {}})
    joined = _payloads(bob.get_received(), 'joined')[0]
    assert joined['sessionId'] == session_id
    assert [p['connectionId'] for p in joined['state']['participants']] == [alice_id, bob_id]
    assert _payloads(alice.get_received(), 'participant-joined') == [
        {'connectionId': bob_id, 'displayData': {'name': bob_id}},
    ]

    alice.emit('set-ready', {'sessionId': session_id})
    bob.emit('set-ready', {'sessionId': session_id})
    for player in (alice, bob):
        received = player.get_received()
        assert _names(received) == ['game-started', 'turn-update']
        assert _payloads(received, 'turn-update') == [{'currentTurn': alice_id, 'sessionId': session_id}]

    alice.emit('set-frame-offset', {'sessionId': session_id, 'offset': {'x': 0, 'y': 0, 'z': 0}})
    alice.emit('update-object', {
        'sessionId': session_id,
        'objectId': 'obj1',
        'position': {'x': 1, 'y': 1, 'z': 1},
        'orientation': {'x': 0, 'y': 0, 'z': 0, 'w': 1},
    })
    for player in (alice, bob):
        received = player.get_received()
        assert _names(received) == ['object-updated', 'turn-update']
        update = _payloads(received, 'object-updated')[0]
        assert update['objectId'] == 'obj1'
        assert update['relativePosition'] == {'x': 1, 'y': 1, 'z': 1}
        assert _payloads(received, 'turn-update') == [{'currentTurn': bob_id, 'sessionId': session_id}]


def test_join_errors(connect):
    alice, _ = connect()
    bob, _ = connect()
    carol, _ = connect()

    carol.emit('join-session', {'sessionId': 'missing'})
    assert _payloads(carol.get_received(), 'error')[0]['reason'] == 'not-found'

    session_id = _create(alice)
    bob.emit('join-session', {'sessionId': session_id})
    bob.get_received()
    carol.emit('join-session', {'sessionId': session_id})
    assert _payloads(carol.get_received(), 'error')[0]['reason'] == 'full'


def test_update_before_calibration_is_rejected(connect):
    alice, _ = connect()
    bob, _ = connect()
    session_id = _create(alice)
    bob.emit('join-session', {'sessionId': session_id})
    alice.emit('set-ready', {'sessionId': session_id})
    bob.emit('set-ready', {'sessionId': session_id})
    alice.get_received()
    bob.get_received()

    alice.emit('update-object', {
        'sessionId': session_id,
        'objectId': 'obj1',
        'position': {'x': 1, 'y': 1, 'z': 1},
        'orientation': {'x': 0, 'y': 0, 'z': 0, 'w': 1},
    })
    assert _payloads(alice.get_received(), 'error')[0]['reason'] == 'frame-not-calibrated'
    assert bob.get_received() == []


def test_collapse_results(connect):
    alice, alice_id = connect()
    bob, bob_id = connect()
    session_id = _create(alice)
    bob.emit('join-session', {'sessionId': session_id})
    alice.get_received()
    bob.get_received()

    bob.emit('collapse', {'sessionId': session_id, 'causingConnectionId': bob_id})
    assert _payloads(bob.get_received(), 'result') == [
        {'message': 'lost', 'sessionId': session_id, 'connectionId': bob_id},
    ]
    assert _payloads(alice.get_received(), 'result') == [{'message': 'won', 'sessionId': session_id}]


def test_disconnect_notifies_remaining_player(connect):
    alice, alice_id = connect()
    bob, bob_id = connect()
    session_id = _create(alice)
    bob.emit('join-session', {'sessionId': session_id})
    alice.get_received()

    bob.disconnect()
    assert _payloads(alice.get_received(), 'participant-left') == [{'connectionId': bob_id}]


def test_last_disconnect_destroys_session(flask_app, connect):
    from towerroom import get_dispatcher
    alice, _ = connect()
    bob, _ = connect()
    session_id = _create(alice)

    alice.disconnect()
    assert get_dispatcher(flask_app).directory.get(session_id) is None

    bob.emit('join-session', {'sessionId': session_id})
    assert _payloads(bob.get_received(), 'error')[0]['reason'] == 'not-found'
