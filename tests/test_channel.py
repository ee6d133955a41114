# =============================================================================
# Command Channel Tests
# =============================================================================

import pytest

from pigeon.errors import ProtocolError
from pigeon.imap.channel import CommandChannel

from conftest import ScriptedTransport


def reply_with(*chunks):
    """respond() stub that answers every command with the same chunks."""
    def respond(tag, verb, args):
        return [chunk.replace("{tag}", tag) for chunk in chunks]
    return respond


async def open_channel(transport):
    await transport.open()
    return CommandChannel(transport)


class TestTags:
    def test_tags_are_zero_padded_and_increasing(self):
        channel = CommandChannel(ScriptedTransport())
        assert [channel.next_tag() for _ in range(3)] == ["A0001", "A0002", "A0003"]

    @pytest.mark.asyncio
    async def test_each_command_gets_a_new_tag(self):
        transport = ScriptedTransport(reply_with("{tag} OK done\r\n"), greeting="")
        channel = await open_channel(transport)

        await channel.send_command("NOOP")
        await channel.send_command("SELECT", '"INBOX"')

        assert transport.written == ["A0001 NOOP\r\n", 'A0002 SELECT "INBOX"\r\n']


class TestReadResponse:
    @pytest.mark.asyncio
    async def test_greeting_is_first_line(self):
        channel = await open_channel(ScriptedTransport())

        greeting = await channel.read_response()

        assert greeting.tag is None
        assert greeting.text.startswith("* OK")

    @pytest.mark.asyncio
    async def test_response_split_across_reads(self):
        transport = ScriptedTransport(
            reply_with("* SEARCH 1 2", " 3\r\n{tag} O", "K SEARCH completed\r\n"),
            greeting="",
        )
        channel = await open_channel(transport)

        response = await channel.send_command("SEARCH", "UNSEEN")

        assert response.ok
        assert response.lines == ["* SEARCH 1 2 3", "A0001 OK SEARCH completed"]

    @pytest.mark.asyncio
    async def test_no_and_bad_results(self):
        transport = ScriptedTransport(reply_with("{tag} NO nope\r\n"), greeting="")
        channel = await open_channel(transport)

        response = await channel.send_command("SELECT", '"Missing"')

        assert response.result == "NO"
        assert not response.ok

    @pytest.mark.asyncio
    async def test_utf8_split_mid_character(self):
        data = "* 1 FETCH (Subject: héllo)\r\n".encode("utf-8")
        cut = data.index("é".encode("utf-8")) + 1

        def respond(tag, verb, args):
            return [data[:cut], data[cut:], f"{tag} OK\r\n"]

        channel = await open_channel(ScriptedTransport(respond, greeting=""))

        response = await channel.send_command("FETCH", "1 (BODY[])")

        assert "héllo" in response.text

    @pytest.mark.asyncio
    async def test_eof_before_completion_raises(self):
        transport = ScriptedTransport(reply_with("* SEARCH 1\r\n"), greeting="")
        channel = await open_channel(transport)

        with pytest.raises(ProtocolError, match="Connection closed"):
            await channel.send_command("SEARCH", "UNSEEN")


class TestCompletionFalsePositive:
    """
    Completion is a substring search, so payload text that looks like the
    terminal line ends the response early. Pinned until it is fixed.
    """

    @pytest.mark.asyncio
    async def test_payload_containing_tag_status_completes_early(self):
        transport = ScriptedTransport(
            reply_with(
                "* 1 FETCH (BODY[] {30}\r\nSubject: A0001 OK looks done\r\n",
                ")\r\n{tag} OK FETCH completed\r\n",
            ),
            greeting="",
        )
        channel = await open_channel(transport)

        response = await channel.send_command("FETCH", "1 (BODY[])")

        assert response.ok
        assert "FETCH completed" not in response.text

    @pytest.mark.asyncio
    async def test_later_status_wins_when_both_present(self):
        transport = ScriptedTransport(
            reply_with("Subject: A0001 NO way\r\n{tag} OK FETCH completed\r\n"),
            greeting="",
        )
        channel = await open_channel(transport)

        response = await channel.send_command("FETCH", "1 (BODY[])")

        assert response.result == "OK"
