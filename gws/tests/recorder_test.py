import asyncio
from contextlib import asynccontextmanager

import pytest

from gws.core.exceptions import CollaboratorFailure, EntityNotFound, ResponderNotFound
from gws.services.recorder import (
    AVAILABILITY_CHECK_STATUS,
    Answer,
    AvailabilityRecorder,
    ResponseSource,
    append_log_line,
)

ADMIN_PHONE = "+61400000000"


class UnguardedLocks:
    @asynccontextmanager
    async def hold(self, key):
        yield

    def __len__(self):
        return 0


@pytest.fixture
def recorder(record_store, notifier):
    return AvailabilityRecorder(record_store, notifier, ADMIN_PHONE)


def test_answer_parse():
    assert Answer.parse(" yes ") is Answer.YES
    assert Answer.parse("No") is Answer.NO
    assert Answer.parse("yes please") is None
    assert Answer.parse("") is None
    assert Answer.parse(None) is None


def test_append_log_line():
    assert append_log_line("", "first") == "first"
    assert append_log_line("first", "second") == "first\nsecond"


@pytest.mark.anyio
async def test_yes_appends_log_and_marks_available(recorder, record_store, notifier):
    """Test a YES adds the tech once and appends one log line."""
    result = await recorder.record_response("recLead1", "recTech1", Answer.YES)

    entity = record_store.entities["recLead1"]
    assert entity.available_responder_ids == ["recTech1"]
    assert entity.status == AVAILABILITY_CHECK_STATUS
    assert entity.availability_log.startswith("Sam Taylor - YES (")
    assert result.admin_notified
    assert notifier.sent[-1]["to"] == ADMIN_PHONE
    assert "Sam Taylor is ✅ AVAILABLE" in notifier.sent[-1]["body"]


@pytest.mark.anyio
async def test_log_is_append_only_and_list_deduplicated(recorder, record_store):
    await recorder.record_response("recLead1", "recTech1", Answer.YES)
    first_log = record_store.entities["recLead1"].availability_log

    await recorder.record_response("recLead1", "recTech1", Answer.YES)
    entity = record_store.entities["recLead1"]
    assert entity.availability_log.startswith(first_log + "\n")
    assert len(entity.availability_log.splitlines()) == 2
    assert entity.available_responder_ids == ["recTech1"]


@pytest.mark.anyio
async def test_link_no_keeps_earlier_yes(recorder, record_store):
    """Test a NO link click leaves Available Techs untouched."""
    await recorder.record_response("recLead1", "recTech1", Answer.YES)
    await recorder.record_response("recLead1", "recTech1", Answer.NO, ResponseSource.LINK)

    entity = record_store.entities["recLead1"]
    assert entity.available_responder_ids == ["recTech1"]
    assert entity.availability_log.splitlines()[-1].startswith("Sam Taylor - NO (")


@pytest.mark.anyio
async def test_sms_no_withdraws_earlier_yes(recorder, record_store):
    """Test a NO SMS reply removes the tech from Available Techs."""
    await recorder.record_response("recLead1", "recTech1", Answer.YES, ResponseSource.SMS)
    await recorder.record_response("recLead1", "recTech2", Answer.YES, ResponseSource.SMS)
    await recorder.record_response("recLead1", "recTech1", Answer.NO, ResponseSource.SMS)

    assert record_store.entities["recLead1"].available_responder_ids == ["recTech2"]


@pytest.mark.anyio
async def test_link_response_is_logged_as_inbound_message(recorder, record_store):
    await recorder.record_response("recLead1", "recTech1", Answer.YES, ResponseSource.LINK)

    inbound = [m for m in record_store.messages if m.direction == "Inbound"]
    assert len(inbound) == 1
    assert inbound[0].content == "Availability response: YES"
    assert inbound[0].entity_id == "recLead1"


@pytest.mark.anyio
async def test_missing_entity_writes_nothing(recorder, record_store, notifier):
    with pytest.raises(EntityNotFound):
        await recorder.record_response("recGone", "recTech1", Answer.YES)
    assert notifier.sent == []
    assert record_store.messages == []


@pytest.mark.anyio
async def test_missing_responder_writes_nothing(recorder, record_store, notifier):
    with pytest.raises(ResponderNotFound):
        await recorder.record_response("recLead1", "recGone", Answer.YES)
    assert record_store.entities["recLead1"].availability_log == ""
    assert notifier.sent == []


@pytest.mark.anyio
async def test_notifier_failure_does_not_fail_recording(recorder, record_store, notifier):
    notifier.fail_all = True

    result = await recorder.record_response("recLead1", "recTech1", Answer.YES)

    assert not result.admin_notified
    assert record_store.entities["recLead1"].available_responder_ids == ["recTech1"]


@pytest.mark.anyio
async def test_message_log_failure_does_not_fail_recording(recorder, record_store):
    record_store.fail_log = True

    result = await recorder.record_response("recLead1", "recTech1", Answer.NO)

    assert result.entity.availability_log.startswith("Sam Taylor - NO (")


@pytest.mark.anyio
async def test_record_store_failure_propagates(recorder, record_store, notifier):
    record_store.fail_updates = True

    with pytest.raises(CollaboratorFailure):
        await recorder.record_response("recLead1", "recTech1", Answer.YES)
    assert notifier.sent == []


@pytest.mark.anyio
async def test_no_admin_phone_skips_notification(record_store, notifier):
    recorder = AvailabilityRecorder(record_store, notifier, admin_phone=None)

    result = await recorder.record_response("recLead1", "recTech1", Answer.YES)

    assert not result.admin_notified
    assert notifier.sent == []


@pytest.mark.anyio
async def test_concurrent_responses_both_land(recorder, record_store):
    """Test two techs answering at once do not overwrite each other's log line."""
    await asyncio.gather(
        recorder.record_response("recLead1", "recTech1", Answer.YES),
        recorder.record_response("recLead1", "recTech2", Answer.YES),
    )

    entity = record_store.entities["recLead1"]
    assert len(entity.availability_log.splitlines()) == 2
    assert sorted(entity.available_responder_ids) == ["recTech1", "recTech2"]
    assert len(recorder.locks) == 0


@pytest.mark.anyio
async def test_concurrent_responses_without_lock_lose_a_line(record_store, notifier):
    """Test the record store interleaves concurrent writers when nothing serialises them."""
    recorder = AvailabilityRecorder(record_store, notifier, ADMIN_PHONE, UnguardedLocks())
    await asyncio.gather(
        recorder.record_response("recLead1", "recTech1", Answer.YES),
        recorder.record_response("recLead1", "recTech2", Answer.YES),
    )

    entity = record_store.entities["recLead1"]
    assert len(entity.availability_log.splitlines()) == 1
    assert len(entity.available_responder_ids) == 1
