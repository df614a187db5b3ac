from flask import current_app, request

from kickoff import socketio
from kickoff.messages import parse_message
from kickoff.services.matches import MatchService


def _service() -> MatchService:
    return current_app.extensions['kickoff']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect():
    _service().connect(_get_sid())
    current_app.logger.info(f"[connect] sid={_get_sid()}")


def handle_disconnect():
    sid = _get_sid()
    finished = _service().disconnect(sid)
    current_app.logger.info(f"[disconnect] sid={sid} finished_match={finished.id if finished else None}")


def handle_hello(data=None):
    msg = parse_message('hello', data)
    reply = _service().hello(_get_sid(), msg)
    if reply:
        current_app.logger.info(f"[hello] sid={_get_sid()} uid={reply['uid']} nick={reply['nick']}")


def handle_join_queue(data=None):
    matches = _service().join_queue(_get_sid())
    for m in matches:
        current_app.logger.info(f"[queue] match={m.id} started from queue")


def handle_create_private(data=None):
    _service().create_private(_get_sid())


def handle_join_by_code(data=None):
    msg = parse_message('join_by_code', data)
    match = _service().join_by_code(_get_sid(), msg.code)
    if match:
        current_app.logger.info(f"[join_by_code] sid={_get_sid()} joined match={match.id}")


def handle_spectate_join(data=None):
    msg = parse_message('spectate_join', data)
    _service().spectate(_get_sid(), msg.match_id)


def handle_kick(data=None):
    msg = parse_message('kick', data)
    if not _service().kick(_get_sid(), msg):
        current_app.logger.debug(f"[kick] ignored from sid={_get_sid()}")


def handle_dive(data=None):
    msg = parse_message('dive', data)
    if not _service().dive(_get_sid(), msg):
        current_app.logger.debug(f"[dive] ignored from sid={_get_sid()}")


EVENT_HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'hello': handle_hello,
    'join_queue': handle_join_queue,
    'create_private': handle_create_private,
    'join_by_code': handle_join_by_code,
    'spectate_join': handle_spectate_join,
    'kick': handle_kick,
    'dive': handle_dive,
}


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on the configured namespace."""
    for event, handler in EVENT_HANDLERS.items():
        socketio.on_event(event, handler, namespace=namespace)
