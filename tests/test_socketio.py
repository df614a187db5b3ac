from conftest import NAMESPACE


def drain(sio_client):
    return [(pkt['name'], pkt['args'][0] if pkt['args'] else None)
            for pkt in sio_client.get_received(NAMESPACE)]


def payloads(events, name):
    return [payload for event, payload in events if event == name]


def test_socket_connect_and_hello(sio_client):
    assert sio_client.is_connected(NAMESPACE)
    sio_client.emit('hello', {'uid': 'u-1', 'nick': ' Ana '}, namespace=NAMESPACE)
    [(name, payload)] = drain(sio_client)
    assert name == 'hello_ok'
    assert payload['uid'] == 'u-1'
    assert payload['nick'] == 'Ana'
    assert isinstance(payload['serverTime'], int)


def test_hello_without_payload_assigns_guest(sio_client):
    sio_client.emit('hello', namespace=NAMESPACE)
    [(name, payload)] = drain(sio_client)
    assert name == 'hello_ok'
    assert payload['uid'].startswith('guest_')
    assert payload['nick'] == 'Guest'


def test_quick_match_shot_reaches_players_and_spectators(client, make_sio_client):
    kicker, keeper, fan = make_sio_client(), make_sio_client(), make_sio_client()
    kicker.emit('join_queue', namespace=NAMESPACE)
    keeper.emit('join_queue', namespace=NAMESPACE)

    kicker_events = drain(kicker)
    keeper_events = drain(keeper)
    [start_a] = payloads(kicker_events, 'match_start')
    [start_b] = payloads(keeper_events, 'match_start')
    assert start_a['youAre'] == 'A' and start_b['youAre'] == 'B'
    assert start_a['matchId'] == start_b['matchId']
    assert payloads(kicker_events, 'your_turn') == [
        {'role': 'kicker', 'round': 1, 'youAre': 'A', 'score': {'A': 0, 'B': 0}}
    ]
    assert payloads(keeper_events, 'your_turn')[0]['role'] == 'keeper'

    match_id = client.get('/matches').get_json()[0]['id']
    assert match_id == start_a['matchId']
    fan.emit('spectate_join', {'matchId': match_id}, namespace=NAMESPACE)
    assert drain(fan) == [('score_update', {'score': {'A': 0, 'B': 0}, 'round': 1, 'turn': 'A'})]

    # Out-of-turn input is ignored
    keeper.emit('kick', {'angleDeg': 0, 'power01': 0.5}, namespace=NAMESPACE)
    assert drain(keeper) == []

    kicker.emit('kick', {'angleDeg': 40, 'power01': 0.5}, namespace=NAMESPACE)
    keeper.emit('dive', {'dir': 'left'}, namespace=NAMESPACE)
    expected = {'result': 'goal', 'zone': 'right', 'score': {'A': 1, 'B': 0}, 'round': 1, 'nextTurn': 'B'}
    for sio in (kicker, keeper, fan):
        events = drain(sio)
        assert payloads(events, 'shot_result') == [expected]
    assert client.get('/matches').get_json()[0]['spectatorCount'] == 1


def test_private_challenge_flow(make_sio_client):
    host, guest, late = make_sio_client(), make_sio_client(), make_sio_client()
    host.emit('create_private', namespace=NAMESPACE)
    [(name, created)] = drain(host)
    assert name == 'private_created'
    code = created['code']
    assert len(code) == 6

    guest.emit('join_by_code', {'code': 'NOPE00'}, namespace=NAMESPACE)
    assert drain(guest) == [('error_msg', {'message': 'Invalid code or room not available'})]

    guest.emit('join_by_code', {'code': code}, namespace=NAMESPACE)
    assert payloads(drain(guest), 'match_start') == [{'matchId': created['matchId'], 'youAre': 'B', 'maxRounds': 5}]
    assert payloads(drain(host), 'match_start') == [{'matchId': created['matchId'], 'youAre': 'A', 'maxRounds': 5}]

    late.emit('join_by_code', {'code': code}, namespace=NAMESPACE)
    assert drain(late) == [('error_msg', {'message': 'Room is already full'})]


def test_disconnect_ends_match_for_opponent_and_spectators(make_sio_client):
    a, b, fan = make_sio_client(), make_sio_client(), make_sio_client()
    a.emit('join_queue', namespace=NAMESPACE)
    b.emit('join_queue', namespace=NAMESPACE)
    match_id = payloads(drain(a), 'match_start')[0]['matchId']
    drain(b)
    fan.emit('spectate_join', {'matchId': match_id}, namespace=NAMESPACE)
    drain(fan)

    a.disconnect(namespace=NAMESPACE)
    over = {'winner': 'B', 'score': {'A': 0, 'B': 0}, 'reason': 'opponent_disconnected'}
    assert drain(b) == [('match_over', over)]
    assert drain(fan) == [('match_over', over)]

    fan.emit('spectate_join', {'matchId': match_id}, namespace=NAMESPACE)
    assert drain(fan) == []
