from vapi.voice.models import Analysis, Artifact, Call, Message
from vapi.voice.transcript import extract_transcript, parse_transcript_text


def _turns(messages):
    return [(m.role, m.spoken_text) for m in messages]


class TestParseTranscriptText:
    def test_banner_and_two_speakers(self):
        turns = parse_transcript_text("Transcript\nAI: Hello there\nUser: Hi")
        assert _turns(turns) == [("assistant", "Hello there"), ("user", "Hi")]

    def test_marker_aliases_are_case_insensitive(self):
        turns = parse_transcript_text("bot: one\nCLIENT: two\nassistant three\nuser:four")
        assert _turns(turns) == [
            ("assistant", "one"),
            ("user", "two"),
            ("assistant", "three"),
            ("user", "four"),
        ]

    def test_continuation_lines_are_joined(self):
        turns = parse_transcript_text("AI: Thanks for calling.\nHow can I help?\nUser: Billing")
        assert _turns(turns) == [
            ("assistant", "Thanks for calling. How can I help?"),
            ("user", "Billing"),
        ]

    def test_text_before_first_marker_is_dropped(self):
        turns = parse_transcript_text("call started at noon\nAI: Hi")
        assert _turns(turns) == [("assistant", "Hi")]

    def test_marker_without_text_takes_next_line(self):
        turns = parse_transcript_text("AI:\nGood morning\nUser:")
        assert _turns(turns) == [("assistant", "Good morning")]

    def test_marker_must_end_at_colon_space_or_line_end(self):
        turns = parse_transcript_text(
            "AI: Checking your file.\nUser's account was closed\nAI-generated notes follow\nUser"
        )
        assert _turns(turns) == [
            ("assistant", "Checking your file. User's account was closed AI-generated notes follow"),
        ]

    def test_unrecognized_text_yields_nothing(self):
        assert parse_transcript_text("just some notes\nnothing else") == []


class TestExtractTranscript:
    def test_analysis_transcript_wins_over_messages(self):
        call = Call(
            analysis=Analysis(transcript=[Message(role="assistant", text="from analysis")]),
            messages=[Message(role="assistant", text="from messages")],
        )
        assert _turns(extract_transcript(call)) == [("assistant", "from analysis")]

    def test_structured_transcript_before_raw_and_messages(self):
        call = Call(
            transcript=[Message(role="user", text="structured")],
            messages=[Message(role="user", text="messages")],
        )
        assert _turns(extract_transcript(call)) == [("user", "structured")]

    def test_raw_transcript_is_parsed(self):
        call = Call(transcript="AI: Hello\nUser: Bye", messages=[Message(role="user", text="m")])
        assert _turns(extract_transcript(call)) == [("assistant", "Hello"), ("user", "Bye")]

    def test_unparseable_raw_transcript_falls_through_to_messages(self):
        call = Call(transcript="no speakers here", messages=[Message(role="user", text="m")])
        assert _turns(extract_transcript(call)) == [("user", "m")]

    def test_messages_before_conversation(self):
        call = Call(
            messages=[Message(role="user", text="messages")],
            conversation=[Message(role="user", text="conversation")],
        )
        assert _turns(extract_transcript(call)) == [("user", "messages")]

    def test_conversation_used_when_nothing_else(self):
        call = Call(conversation=[Message(role="assistant", content="hello")])
        assert _turns(extract_transcript(call)) == [("assistant", "hello")]

    def test_structured_artifact_beats_artifact_content(self):
        call = Call(
            artifacts=[
                Artifact(content="Transcript\nAI: from content"),
                Artifact(transcript=[Message(role="assistant", text="from artifact")]),
            ]
        )
        assert _turns(extract_transcript(call)) == [("assistant", "from artifact")]

    def test_artifact_content_is_parsed(self):
        call = Call(artifacts=[Artifact(content="Transcript\nAI: Hi\nUser: Hello")])
        assert _turns(extract_transcript(call)) == [("assistant", "Hi"), ("user", "Hello")]

    def test_empty_call_yields_empty_transcript(self):
        assert extract_transcript(Call(id="c")) == []

    def test_camel_case_payload(self):
        call = Call.model_validate(
            {
                "id": "c1",
                "assistantId": "a1",
                "messages": [{"role": "bot", "message": "live utterance"}],
            }
        )
        assert call.assistant_id == "a1"
        assert _turns(extract_transcript(call)) == [("bot", "live utterance")]
