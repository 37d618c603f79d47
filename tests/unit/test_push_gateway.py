from __future__ import annotations

import pytest

from lifelog.notifications.contracts import InvalidPushTokenError, NotificationKind, PushOutcome, PushTransportError
from lifelog.notifications.gateway import PushNotificationGateway
from lifelog.services.dispatch import DeliveryDispatcher, WarningDispatcher
from tests.fakes import RecordingPushSender, letter_doc, user_doc


@pytest.fixture
def gateway(letter_repo, user_repo, push_sender):
  return PushNotificationGateway(letter_repo=letter_repo, user_repo=user_repo, push_sender=push_sender)


@pytest.mark.anyio
@pytest.mark.parametrize("kind", [NotificationKind.LETTER_DELIVERED, NotificationKind.DELIVERY_WARNING])
async def test_no_token_skips_transport_for_every_kind(gateway, letter_repo, user_repo, push_sender, kind):
  letter_repo.docs["letter-1"] = letter_doc()
  user_repo.docs["recipient-1"] = user_doc(token=None)

  outcome = await gateway.send(user_id="recipient-1", letter_id="letter-1", kind=kind, context={"days_remaining": 2})

  assert outcome is PushOutcome.NO_TOKEN
  assert push_sender.sent == []


@pytest.mark.anyio
async def test_unknown_user_is_not_an_error(gateway, push_sender):
  outcome = await gateway.send(user_id="ghost", letter_id="letter-1", kind=NotificationKind.DELIVERY_WARNING, context={"days_remaining": 1})

  assert outcome is PushOutcome.USER_NOT_FOUND
  assert push_sender.sent == []


@pytest.mark.anyio
async def test_missing_sender_falls_back_to_defaults(letter_repo, user_repo, push_sender):
  letter_repo.docs["letter-1"] = letter_doc(sender="deleted-user")
  user_repo.docs["recipient-1"] = user_doc(token="recipient-token")
  gateway = PushNotificationGateway(letter_repo=letter_repo, user_repo=user_repo, push_sender=push_sender)
  delivery = DeliveryDispatcher(letter_repo=letter_repo, gateway=gateway)

  delivered = await delivery.deliver("letter-1")

  assert delivered is True
  assert letter_repo.docs["letter-1"]["status"] == "delivered"
  push = push_sender.sent[0]
  assert push.title == "💌 手紙が届きました"
  assert push.body == "誰かさんからの手紙です"
  assert push.data == {"type": "letter", "letterId": "letter-1"}


@pytest.mark.anyio
async def test_sender_is_read_from_the_letter_when_not_supplied(gateway, letter_repo, user_repo, push_sender):
  letter_repo.docs["letter-1"] = letter_doc()
  user_repo.docs["sender-1"] = user_doc(name="Ken", emoji="🐻")
  user_repo.docs["recipient-1"] = user_doc(token="recipient-token")

  outcome = await gateway.send(user_id="recipient-1", letter_id="letter-1", kind=NotificationKind.LETTER_DELIVERED)

  assert outcome is PushOutcome.SENT
  assert push_sender.sent[0].title == "🐻 手紙が届きました"
  assert push_sender.sent[0].body == "Kenさんからの手紙です"


@pytest.mark.anyio
async def test_sender_lookup_failure_still_sends_with_defaults(gateway, letter_repo, user_repo, push_sender):
  letter_repo.docs["letter-1"] = letter_doc()
  user_repo.docs["recipient-1"] = user_doc(token="recipient-token")
  user_repo.fail_gets_for.add("sender-1")

  outcome = await gateway.send(user_id="recipient-1", letter_id="letter-1", kind=NotificationKind.LETTER_DELIVERED)

  assert outcome is PushOutcome.SENT
  assert push_sender.sent[0].body == "誰かさんからの手紙です"


@pytest.mark.anyio
async def test_transport_failure_is_swallowed(letter_repo, user_repo):
  user_repo.docs["sender-1"] = user_doc(token="sender-token")
  gateway = PushNotificationGateway(letter_repo=letter_repo, user_repo=user_repo, push_sender=RecordingPushSender(error=PushTransportError("fcm down")))

  outcome = await gateway.send(user_id="sender-1", letter_id="letter-1", kind=NotificationKind.DELIVERY_WARNING, context={"days_remaining": 2})

  assert outcome is PushOutcome.TRANSPORT_FAILED
  assert user_repo.cleared_tokens == []


@pytest.mark.anyio
async def test_unexpected_transport_exception_is_swallowed(letter_repo, user_repo):
  user_repo.docs["sender-1"] = user_doc(token="sender-token")
  gateway = PushNotificationGateway(letter_repo=letter_repo, user_repo=user_repo, push_sender=RecordingPushSender(error=ConnectionResetError("reset")))

  outcome = await gateway.send(user_id="sender-1", letter_id="letter-1", kind=NotificationKind.DELIVERY_WARNING, context={"days_remaining": 2})

  assert outcome is PushOutcome.TRANSPORT_FAILED


@pytest.mark.anyio
async def test_invalid_token_is_cleared(letter_repo, user_repo):
  user_repo.docs["sender-1"] = user_doc(token="stale-token")
  gateway = PushNotificationGateway(letter_repo=letter_repo, user_repo=user_repo, push_sender=RecordingPushSender(error=InvalidPushTokenError("unregistered")))

  outcome = await gateway.send(user_id="sender-1", letter_id="letter-1", kind=NotificationKind.DELIVERY_WARNING, context={"days_remaining": 2})

  assert outcome is PushOutcome.INVALID_TOKEN
  assert user_repo.cleared_tokens == ["sender-1"]
  assert "fcmToken" not in user_repo.docs["sender-1"]


@pytest.mark.anyio
async def test_recipient_lookup_failure_is_reported(gateway, user_repo, push_sender):
  user_repo.fail_gets_for.add("recipient-1")

  outcome = await gateway.send(user_id="recipient-1", letter_id="letter-1", kind=NotificationKind.LETTER_DELIVERED)

  assert outcome is PushOutcome.LOOKUP_FAILED
  assert push_sender.sent == []


@pytest.mark.anyio
async def test_warning_without_days_is_a_render_failure(gateway, user_repo, push_sender):
  user_repo.docs["sender-1"] = user_doc(token="sender-token")

  outcome = await gateway.send(user_id="sender-1", letter_id="letter-1", kind=NotificationKind.DELIVERY_WARNING)

  assert outcome is PushOutcome.RENDER_FAILED
  assert push_sender.sent == []


@pytest.mark.anyio
async def test_warning_dispatcher_targets_the_owner(gateway, letter_repo, user_repo, push_sender):
  letter_repo.docs["letter-1"] = letter_doc()
  user_repo.docs["sender-1"] = user_doc(token="sender-token")
  user_repo.docs["recipient-1"] = user_doc(token="recipient-token")
  letter = await letter_repo.get("letter-1")

  outcome = await WarningDispatcher(gateway=gateway).warn(letter, 0)

  assert outcome is PushOutcome.SENT
  assert push_sender.sent[0].token == "sender-token"
  assert push_sender.sent[0].body == "あと0日ログインがないと、大切な人への手紙が配信されます"
  assert letter_repo.update_calls == []


@pytest.mark.anyio
async def test_warning_dispatcher_rejects_negative_days(gateway, letter_repo):
  letter_repo.docs["letter-1"] = letter_doc()
  letter = await letter_repo.get("letter-1")

  with pytest.raises(ValueError):
    await WarningDispatcher(gateway=gateway).warn(letter, -1)


@pytest.mark.anyio
async def test_delivery_dispatcher_skips_missing_letter(gateway, letter_repo, push_sender):
  delivered = await DeliveryDispatcher(letter_repo=letter_repo, gateway=gateway).deliver("nope")

  assert delivered is False
  assert letter_repo.mark_delivered_calls == []
  assert push_sender.sent == []
