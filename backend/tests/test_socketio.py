def _events(sio_client, name):
    return [pkt["args"][0] for pkt in sio_client.get_received() if pkt["name"] == name]


def _names(received):
    return [pkt["name"] for pkt in received]


def _create_room(host, **extra):
    ack = host.emit("room:create", {"name": "Den", **extra}, callback=True)
    assert ack["ok"] is True
    return ack["room"]["id"]


def test_connect_receives_lobby_state(app_socketio):
    app, socketio = app_socketio
    sio_client = socketio.test_client(app)
    names = _names(sio_client.get_received())
    assert "room:list" in names
    assert "user:list" in names
    sio_client.disconnect()


def test_profile_broadcasts_user_list(player):
    ann = player("Ann")
    player("Bob")

    lists = _events(ann, "user:list")
    assert [u["name"] for u in lists[-1]["users"]] == ["Ann", "Bob"]


def test_create_room_requires_profile(app_socketio):
    app, socketio = app_socketio
    anon = socketio.test_client(app)
    anon.get_received()

    ack = anon.emit("room:create", {"name": "Den"}, callback=True)

    assert ack == {"ok": False, "error": "profile_required"}
    assert _names(anon.get_received()) == ["room:error"]
    anon.disconnect()


def test_invalid_payload_only_acks(player):
    ann = player("Ann")

    ack = ann.emit("room:join", {"password": "x"}, callback=True)

    assert ack == {"ok": False, "error": "invalid_payload"}
    assert ann.get_received() == []


def test_create_join_and_list(player, client):
    ann = player("Ann")
    bob = player("Bob")
    room_id = _create_room(ann)

    ack = bob.emit("room:join", {"roomId": room_id}, callback=True)
    assert ack["ok"] is True
    assert [m["name"] for m in ack["room"]["members"]] == ["Ann", "Bob"]

    states = _events(ann, "room:state")
    assert len(states[-1]["members"]) == 2

    rooms = client.get("/api/rooms").get_json()["rooms"]
    assert rooms[0]["id"] == room_id
    assert rooms[0]["memberCount"] == 2


def test_round_flow_keeps_word_private(player):
    ann = player("Ann")
    bob = player("Bob")
    room_id = _create_room(ann)
    bob.emit("room:join", {"roomId": room_id}, callback=True)
    ann.get_received()
    bob.get_received()

    ack = ann.emit("game:start", {"roomId": room_id}, callback=True)
    assert ack == {"ok": True}

    ann_received = ann.get_received()
    bob_received = bob.get_received()
    words = [p["args"][0]["word"] for p in ann_received if p["name"] == "round:word"]
    assert len(words) == 1
    assert "round:word" not in _names(bob_received)
    assert "round:state" in _names(bob_received)

    ack = bob.emit("guess:submit", {"roomId": room_id, "text": words[0].upper()}, callback=True)
    assert ack == {"ok": True, "correct": True}

    correct = _events(ann, "guess:correct")
    assert correct[0]["by"] == bob.user_id


def test_only_host_can_start(player):
    ann = player("Ann")
    bob = player("Bob")
    room_id = _create_room(ann)
    bob.emit("room:join", {"roomId": room_id}, callback=True)
    ann.get_received()
    bob.get_received()

    ack = bob.emit("game:start", {"roomId": room_id}, callback=True)

    assert ack == {"ok": False, "error": "only_host"}
    assert _events(bob, "game:error") == [{"error": "only_host"}]
    assert "game:error" not in _names(ann.get_received())


def test_strokes_reach_others_and_sync(player):
    ann = player("Ann")
    bob = player("Bob")
    room_id = _create_room(ann)
    bob.emit("room:join", {"roomId": room_id}, callback=True)
    ann.emit("game:start", {"roomId": room_id}, callback=True)
    ann.get_received()
    bob.get_received()

    for i in range(3):
        ann.emit("draw:stroke", {"roomId": room_id, "stroke": {"n": i}})

    assert [e["stroke"] for e in _events(bob, "draw:stroke")] == [{"n": 0}, {"n": 1}, {"n": 2}]
    assert "draw:stroke" not in _names(ann.get_received())

    ack = bob.emit("game:sync", {"roomId": room_id}, callback=True)
    assert ack["ok"] is True
    assert ack["strokes"] == [{"n": 0}, {"n": 1}, {"n": 2}]


def test_disconnect_tears_down_short_room(player, client):
    ann = player("Ann")
    bob = player("Bob")
    room_id = _create_room(ann)
    bob.emit("room:join", {"roomId": room_id}, callback=True)
    ann.emit("game:start", {"roomId": room_id}, callback=True)
    ann.get_received()

    bob.disconnect()

    terminated = _events(ann, "room:terminated")
    assert terminated == [{"roomId": room_id, "reason": "insufficient_players"}]
    assert client.get(f"/api/rooms/{room_id}").status_code == 404


def test_host_terminates_room(player):
    ann = player("Ann")
    bob = player("Bob")
    room_id = _create_room(ann)
    bob.emit("room:join", {"roomId": room_id}, callback=True)
    bob.get_received()

    ack = ann.emit("room:terminate", {"roomId": room_id}, callback=True)

    assert ack == {"ok": True}
    assert _events(bob, "room:terminated")[0]["reason"] == "terminated"

    # The room is gone for everyone, including former members.
    ack = bob.emit("chat:message", {"roomId": room_id, "text": "hello?"}, callback=True)
    assert ack == {"ok": False, "error": "room_not_found"}


def test_chat_relay_in_lobby(player):
    ann = player("Ann")
    bob = player("Bob")
    room_id = _create_room(ann)
    bob.emit("room:join", {"roomId": room_id}, callback=True)
    ann.get_received()

    bob.emit("chat:message", {"roomId": room_id, "text": "hi all"}, callback=True)

    messages = _events(ann, "chat:message")
    assert messages[0]["text"] == "hi all"
    assert messages[0]["name"] == "Bob"
