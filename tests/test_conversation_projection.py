from bson import ObjectId


async def test_projection_shows_other_participant_and_own_unread(service, projection, users, conversation):
    await service.send_message(conversation["_id"], users["bob"], content="welcome")
    convo = await service.get_conversation(conversation["_id"], users["alice"])

    view = await projection.project(convo, users["alice"])
    assert view["id"] == conversation["_id"]
    assert view["unread_count"] == 1
    assert view["other_participant"]["id"] == users["bob"]
    assert view["other_participant"]["full_name"] == "Bob Okafor"
    assert view["other_participant"]["role"] == "therapist"
    assert view["last_message"]["content"] == "welcome"
    assert view["last_message"]["sender_id"] == users["bob"]

    bob_view = await projection.project(convo, users["bob"])
    assert bob_view["unread_count"] == 0
    assert bob_view["other_participant"]["id"] == users["alice"]


async def test_therapist_profile_photo_wins_over_account_photo(service, projection, users, conversation):
    await service.send_message(conversation["_id"], users["bob"], content="hi")
    convo = await service.get_conversation(conversation["_id"], users["alice"])

    view = await projection.project(convo, users["alice"])
    assert view["other_participant"]["profile_photo"] == "https://cdn.example.com/bob-therapist.png"
    assert view["last_message"]["sender_profile_photo"] == "https://cdn.example.com/bob-therapist.png"

    bob_view = await projection.project(convo, users["bob"])
    assert bob_view["other_participant"]["profile_photo"] == "https://cdn.example.com/alice.png"


async def test_deleted_therapist_profile_falls_back_to_account_photo(db, service, projection, users, conversation):
    await db["therapists"].update_many({}, {"$set": {"deleted_at": "2026-01-01"}})
    view = await projection.project(conversation, users["alice"])
    assert view["other_participant"]["profile_photo"] == "https://cdn.example.com/bob-account.png"


async def test_missing_photo_is_none(service, projection, users):
    convo, _ = await service.get_or_create_conversation(users["alice"], users["carol"])
    view = await projection.project(convo, users["alice"])
    assert view["other_participant"]["profile_photo"] is None
    assert view["last_message"] is None
    assert view["unread_count"] == 0


async def test_last_message_hidden_when_deleted_for_viewer(service, projection, users, conversation):
    saved = await service.send_message(conversation["_id"], users["alice"], content="forget this")
    await service.delete_message(saved["_id"], users["bob"])
    convo = await service.get_conversation(conversation["_id"], users["bob"])

    assert (await projection.project(convo, users["bob"]))["last_message"] is None
    assert (await projection.project(convo, users["alice"]))["last_message"]["id"] == saved["_id"]


async def test_project_many_keeps_order(service, projection, users, clock):
    with_bob, _ = await service.get_or_create_conversation(users["alice"], users["bob"])
    with_carol, _ = await service.get_or_create_conversation(users["alice"], users["carol"])
    await service.send_message(with_bob["_id"], users["alice"], content="first")
    clock.advance(minutes=1)
    await service.send_message(with_carol["_id"], users["carol"], content="second")

    items, total = await service.list_conversations(users["alice"])
    views = await projection.project_many(items, users["alice"])
    assert total == 2
    assert [v["other_participant"]["id"] for v in views] == [users["carol"], users["bob"]]
    assert [v["unread_count"] for v in views] == [1, 0]


async def test_dangling_last_message_pointer(db, service, projection, users, conversation):
    await db["conversations"].update_one(
        {"_id": ObjectId(conversation["_id"])}, {"$set": {"last_message_id": ObjectId()}}
    )
    convo = await service.get_conversation(conversation["_id"], users["alice"])
    assert (await projection.project(convo, users["alice"]))["last_message"] is None
