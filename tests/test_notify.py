# =============================================================================
# Console Notifier Tests
# =============================================================================

import io

from pigeon.config import NotifyOptions, Settings
from pigeon.core import Message
from pigeon.notify import ConsoleNotifier

MESSAGE = Message(id="1", subject="Hello", sender="Alice <alice@example.com>",
                  link="https://mail.google.com/x")


def make_notifier(**options):
    out, err = io.StringIO(), io.StringIO()
    notifier = ConsoleNotifier(Settings(NotifyOptions(**options)), stream=out, error_stream=err)
    return notifier, out, err


def test_message_with_link():
    notifier, out, _ = make_notifier()

    notifier.notify("me@gmail.com", MESSAGE)

    assert out.getvalue() == (
        "[me@gmail.com] Hello - Alice <alice@example.com>\n"
        "    https://mail.google.com/x\n"
    )


def test_link_hidden_when_using_mail_client():
    notifier, out, _ = make_notifier(use_mail_client=True)

    notifier.notify("me@gmail.com", MESSAGE)

    assert "https://" not in out.getvalue()


def test_bell_when_sound_enabled():
    notifier, out, _ = make_notifier(play_sound=True)

    notifier.notify("me@gmail.com", MESSAGE)

    assert out.getvalue().startswith("\a[me@gmail.com]")


def test_error_goes_to_error_stream():
    notifier, out, err = make_notifier()

    notifier.notify_error("me@gmail.com", "Unable to check emails")

    assert out.getvalue() == ""
    assert err.getvalue() == "[me@gmail.com] Unable to check emails\n"
