from __future__ import annotations

import threading
import unittest

from chattl.app.translation.memory import CONTEXT_HEADER, ContextMemoryStore


class ContextMemoryTest(unittest.TestCase):
    def test_oldest_entry_is_evicted(self) -> None:
        store = ContextMemoryStore(max_messages=3)
        for index in range(5):
            store.record("party", f"p{index}", f"message {index}")

        entries = store.entries("party")
        self.assertEqual([entry.text for entry in entries], ["message 2", "message 3", "message 4"])

    def test_snapshot_format_preserves_order(self) -> None:
        store = ContextMemoryStore(max_messages=3)
        store.record("say", "Aki", "hello")
        store.record("say", "Ren", "やあ")

        self.assertEqual(store.snapshot("say"), f"{CONTEXT_HEADER}\nAki: hello\nRen: やあ")
        self.assertEqual(store.snapshot("party"), "")

    def test_channels_are_isolated(self) -> None:
        store = ContextMemoryStore()
        store.record("party", "Aki", "one")
        store.record("ls1", "Ren", "two")
        self.assertEqual(len(store.entries("party")), 1)
        self.assertEqual(store.channel_keys(), ["ls1", "party"])

    def test_disabled_store_records_nothing(self) -> None:
        store = ContextMemoryStore(enabled=False)
        store.record("say", "Aki", "hello")
        self.assertEqual(store.snapshot("say"), "")
        self.assertEqual(store.entries("say"), [])

    def test_clear_and_clear_all(self) -> None:
        store = ContextMemoryStore()
        store.record("say", "Aki", "hello")
        store.record("party", "Ren", "hi")

        self.assertTrue(store.clear("say"))
        self.assertFalse(store.clear("say"))
        self.assertEqual(store.clear_all(), 1)
        self.assertEqual(store.channel_keys(), [])

    def test_configure_shrinks_existing_channels(self) -> None:
        store = ContextMemoryStore(max_messages=5)
        for index in range(5):
            store.record("say", "Aki", str(index))

        store.configure(max_messages=2, enabled=True)
        self.assertEqual([entry.text for entry in store.entries("say")], ["3", "4"])
        self.assertEqual(store.max_messages, 2)

    def test_concurrent_records_stay_bounded(self) -> None:
        store = ContextMemoryStore(max_messages=4)

        def writer(name: str) -> None:
            for index in range(200):
                store.record("shout", name, str(index))

        threads = [threading.Thread(target=writer, args=(f"w{n}",)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(store.entries("shout")), 4)


if __name__ == "__main__":
    unittest.main()
