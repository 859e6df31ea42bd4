from lexiboard import socketio


def session_room(session_id) -> str:
    return f"session:{session_id}"


def publish(session, events) -> None:
    """Emit committed turn events to the session room, then a state_update ping."""
    room = session_room(session.id)
    for event in events:
        payload = {'session_id': session.id}
        payload.update(event.payload)
        socketio.emit(event.name, payload, to=room, namespace='/ws')
    socketio.emit('state_update', {'session_id': session.id, 'status': session.status}, to=room, namespace='/ws')
