from gws.services.twilio import EMPTY_TWIML, compute_twilio_signature, verify_twilio_signature

WEBHOOK = "/webhooks/twilio-sms"


def _dispatch(client, responder_ids):
    response = client.post("/api/availability-checks", json={"entityId": "recLead1", "responderIds": responder_ids})
    assert response.status_code == 200


def test_sms_yes_reply_is_attributed_to_latest_check(client, record_store):
    """Test a YES reply lands on the engagement of the last availability SMS."""
    _dispatch(client, ["recTech1"])

    response = client.post(WEBHOOK, data={"From": "+61411111111", "Body": " Yes "})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert response.text == EMPTY_TWIML
    entity = record_store.entities["recLead1"]
    assert entity.available_responder_ids == ["recTech1"]
    assert "Sam Taylor - YES" in entity.availability_log
    inbound = [m for m in record_store.messages if m.direction == "Inbound"]
    assert inbound[-1].content == " Yes "
    assert inbound[-1].entity_id == "recLead1"


def test_sms_no_reply_withdraws_availability(client, record_store):
    _dispatch(client, ["recTech2"])
    client.post(WEBHOOK, data={"From": "0422222222", "Body": "YES"})

    client.post(WEBHOOK, data={"From": "+61 422 222 222", "Body": "no"})

    assert record_store.entities["recLead1"].available_responder_ids == []


def test_other_sms_is_only_logged(client, record_store, notifier):
    _dispatch(client, ["recTech1"])
    sent_before = len(notifier.sent)

    response = client.post(WEBHOOK, data={"From": "+61411111111", "Body": "running 10 min late"})

    assert response.status_code == 200
    assert record_store.entities["recLead1"].available_responder_ids == []
    assert len(notifier.sent) == sent_before
    assert record_store.messages[-1].content == "running 10 min late"


def test_reply_from_unknown_number(client, record_store):
    response = client.post(WEBHOOK, data={"From": "+61488888888", "Body": "YES"})

    assert response.status_code == 200
    assert record_store.entities["recLead1"].availability_log == ""
    assert record_store.messages[-1].responder_id is None


def test_reply_without_prior_check(client, record_store):
    response = client.post(WEBHOOK, data={"From": "+61411111111", "Body": "YES"})

    assert response.status_code == 200
    assert record_store.entities["recLead1"].available_responder_ids == []


def test_signature_validation(client, services):
    """Test signed webhooks are accepted and unsigned ones rejected when validation is on."""
    services.settings.TWILIO_VALIDATE_SIGNATURE = True
    services.settings.TWILIO_AUTH_TOKEN = "twilio-token"
    params = {"From": "+61488888888", "Body": "hello"}

    response = client.post(WEBHOOK, data=params)
    assert response.status_code == 403

    signature = compute_twilio_signature("twilio-token", "https://hub.example.com" + WEBHOOK, params)
    response = client.post(WEBHOOK, data=params, headers={"X-Twilio-Signature": signature})
    assert response.status_code == 200


def test_twilio_signature_covers_url_and_params():
    params = {"From": "+61411111111", "Body": "YES", "To": "+61499999999"}
    url = "https://hub.example.com/webhooks/twilio-sms"
    signature = compute_twilio_signature("twilio-token", url, params)

    assert verify_twilio_signature("twilio-token", url, dict(reversed(list(params.items()))), signature)
    assert not verify_twilio_signature("twilio-token", url, dict(params, Body="NO"), signature)
    assert not verify_twilio_signature("twilio-token", url + "?x=1", params, signature)
    assert not verify_twilio_signature("other-token", url, params, signature)
    assert not verify_twilio_signature("twilio-token", url, params, None)
