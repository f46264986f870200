"""
Unit tests for token-budgeted window selection.
"""

from chatrelay.models.chat import Message
from chatrelay.services.context_window import select_window


def _msg(role: str, words: int, tag: str = "w") -> Message:
    return Message(role=role, content=" ".join([tag] * words))


class TestSelectWindow:
    def test_everything_fits(self, tokenizer):
        messages = [_msg("user", 3), _msg("assistant", 4), _msg("user", 2)]
        window = select_window("one two", messages, budget=100, tokenizer=tokenizer)

        assert window.messages == messages
        assert window.token_count == 2 + 3 + 4 + 2

    def test_keeps_trailing_run_in_chronological_order(self, tokenizer):
        messages = [_msg("user", 5, "a"), _msg("assistant", 5, "b"), _msg("user", 5, "c")]
        window = select_window("sys", messages, budget=11, tokenizer=tokenizer)

        assert window.messages == messages[1:]
        assert window.token_count == 11

    def test_stops_at_first_overflow_without_skipping(self, tokenizer):
        """A small older message is not picked once a larger newer one overflows."""
        messages = [_msg("user", 1, "old"), _msg("assistant", 50, "big"), _msg("user", 3, "new")]
        window = select_window("sys", messages, budget=10, tokenizer=tokenizer)

        assert window.messages == [messages[2]]
        assert window.token_count == 4

    def test_instruction_over_budget_gives_empty_window(self, tokenizer):
        messages = [_msg("user", 1)]
        window = select_window("a b c d e", messages, budget=4, tokenizer=tokenizer)

        assert window.messages == []

    def test_instruction_equal_to_budget_gives_empty_window(self, tokenizer):
        messages = [Message(role="user", content="")]
        window = select_window("a b c", messages, budget=3, tokenizer=tokenizer)

        assert window.messages == []

    def test_message_exactly_filling_budget_is_kept(self, tokenizer):
        messages = [_msg("user", 7)]
        window = select_window("a b c", messages, budget=10, tokenizer=tokenizer)

        assert window.messages == messages
        assert window.token_count == 10

    def test_no_messages(self, tokenizer):
        window = select_window("sys", [], budget=10, tokenizer=tokenizer)

        assert window.messages == []
        assert window.token_count == 1

    def test_window_is_maximal_and_within_budget(self, tokenizer):
        sizes = [4, 1, 6, 2, 3, 5, 2]
        messages = [_msg("user", n, str(i)) for i, n in enumerate(sizes)]
        for budget in range(1, 30):
            window = select_window("s", messages, budget=budget, tokenizer=tokenizer)
            kept = len(window.messages)

            assert window.messages == messages[len(messages) - kept :]
            if kept:
                assert window.token_count <= budget
            if kept < len(messages) and 1 < budget:
                older = sizes[len(messages) - kept - 1]
                assert window.token_count + older > budget

    def test_input_is_not_modified(self, tokenizer, conversation):
        original = list(conversation)
        select_window("sys", conversation, budget=3, tokenizer=tokenizer)

        assert conversation == original
