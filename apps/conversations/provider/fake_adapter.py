"""In-memory messaging provider for development and testing.

Records every call; ``fail_on`` makes chosen operations raise so tests can
exercise post-commit drift handling.
"""

from apps.conversations.provider.port import ConversationProvider, ConversationProviderError


class FakeConversationProvider(ConversationProvider):
    """Configurable fake messaging provider."""

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.threads: dict[str, dict] = {}
        self.fail_on: set[str] = set()

    def _record(self, method: str, **params) -> None:
        self.calls.append({"method": method, **params})
        if method in self.fail_on:
            raise ConversationProviderError(f"Provider failed on {method}")

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def create_thread(self, thread_id: str, title: str) -> None:
        self._record("create_thread", thread_id=thread_id, title=title)
        self.threads[thread_id] = {"title": title, "participants": {}, "messages": []}

    def add_participant(self, thread_id: str, user_id: str, role: str) -> None:
        self._record("add_participant", thread_id=thread_id, user_id=user_id, role=role)
        self.threads.setdefault(thread_id, {"participants": {}, "messages": []})
        self.threads[thread_id]["participants"][user_id] = role

    def update_participant(self, thread_id: str, user_id: str, role: str) -> None:
        self._record("update_participant", thread_id=thread_id, user_id=user_id, role=role)
        self.threads.setdefault(thread_id, {"participants": {}, "messages": []})
        self.threads[thread_id]["participants"][user_id] = role

    def remove_participant(self, thread_id: str, user_id: str) -> None:
        self._record("remove_participant", thread_id=thread_id, user_id=user_id)
        if thread_id in self.threads:
            self.threads[thread_id]["participants"].pop(user_id, None)

    def send_message(self, thread_id: str, text: str, event_tag: str) -> None:
        self._record("send_message", thread_id=thread_id, text=text, event_tag=event_tag)
        if thread_id in self.threads:
            self.threads[thread_id]["messages"].append((event_tag, text))

    def make_readonly(self, thread_id: str) -> None:
        self._record("make_readonly", thread_id=thread_id)
        if thread_id in self.threads:
            participants = self.threads[thread_id]["participants"]
            for user_id in participants:
                participants[user_id] = "readonly"
