import asyncio
import unittest
from typing import List

from src.core.errors import TransportError, ValidationError
from src.core.name_resolver import LabelLocks, NameResolver, matches, normalize_label
from src.models.records import MatchPolicy, Record


class InMemoryStore:
    """Record store that keeps records in a list and counts calls."""

    def __init__(self, titles: List[str], policy: MatchPolicy) -> None:
        self.match_policy = policy
        self.records = [Record(id=f"id-{i + 1}", title=t) for i, t in enumerate(titles)]
        self.list_calls = 0
        self.created: List[str] = []

    async def list_records(self) -> List[Record]:
        self.list_calls += 1
        return list(self.records)

    async def create_record(self, title: str) -> Record:
        record = Record(id=f"id-{len(self.records) + 1}", title=title)
        self.records.append(record)
        self.created.append(title)
        return record


class FailingStore(InMemoryStore):
    async def list_records(self) -> List[Record]:
        raise TransportError("Failed to list Trello cards: 401 - invalid token", status_code=401)


class TestNormalizeLabel(unittest.TestCase):
    def test_strips_accents_and_case(self):
        self.assertEqual(normalize_label("José Álvares"), "jose alvares")
        self.assertEqual(normalize_label("  JOÃO  "), "joao")

    def test_none_is_empty(self):
        self.assertEqual(normalize_label(None), "")

    def test_policies(self):
        self.assertTrue(matches(MatchPolicy.SUBSTRING, "jose", "jose alvares - turma a"))
        self.assertFalse(matches(MatchPolicy.EXACT, "jose", "jose alvares - turma a"))
        self.assertTrue(matches(MatchPolicy.EXACT, "maria souza", "maria souza"))


class TestSubstringResolution(unittest.TestCase):
    def test_accented_label_matches_uppercase_title(self):
        async def run():
            store = InMemoryStore(["Outro Aluno", "JOSE ALVARES - TURMA A"], MatchPolicy.SUBSTRING)
            result = await NameResolver(store).resolve("José Álvares")

            self.assertFalse(result.is_new)
            self.assertEqual(result.record.id, "id-2")
            self.assertEqual(result.record.title, "JOSE ALVARES - TURMA A")
            self.assertEqual(store.created, [])

        asyncio.run(run())

    def test_first_match_in_store_order_wins(self):
        async def run():
            store = InMemoryStore(["Ana Lima - manhã", "Ana Lima - tarde"], MatchPolicy.SUBSTRING)
            result = await NameResolver(store).resolve("ana lima")
            self.assertEqual(result.record.id, "id-1")

        asyncio.run(run())

    def test_repeated_resolve_returns_same_id(self):
        async def run():
            store = InMemoryStore(["JOSE ALVARES - TURMA A"], MatchPolicy.SUBSTRING)
            resolver = NameResolver(store)
            first = await resolver.resolve("José Álvares")
            second = await resolver.resolve("José Álvares")

            self.assertEqual(first.record.id, second.record.id)
            self.assertEqual(store.list_calls, 2)

        asyncio.run(run())


class TestExactResolution(unittest.TestCase):
    def test_equal_after_normalization_matches(self):
        async def run():
            store = InMemoryStore(["MARIA SOUZA 2", "MARIA SOUZA"], MatchPolicy.EXACT)
            result = await NameResolver(store).resolve("maria souza")

            self.assertFalse(result.is_new)
            self.assertEqual(result.record.title, "MARIA SOUZA")

        asyncio.run(run())

    def test_containment_is_not_enough(self):
        async def run():
            store = InMemoryStore(["MARIA SOUZA 2"], MatchPolicy.EXACT)
            result = await NameResolver(store).resolve("maria souza")

            self.assertTrue(result.is_new)
            self.assertEqual(store.created, ["maria souza"])

        asyncio.run(run())

    def test_policy_override(self):
        async def run():
            store = InMemoryStore(["MARIA SOUZA 2"], MatchPolicy.EXACT)
            result = await NameResolver(store, policy=MatchPolicy.SUBSTRING).resolve("Maria Souza")
            self.assertFalse(result.is_new)

        asyncio.run(run())


class TestCreateOnMiss(unittest.TestCase):
    def test_creates_exactly_one_record_titled_with_label(self):
        async def run():
            store = InMemoryStore([], MatchPolicy.SUBSTRING)
            result = await NameResolver(store).resolve("Novo Aluno")

            self.assertTrue(result.is_new)
            self.assertEqual(result.record.title, "Novo Aluno")
            self.assertEqual(store.created, ["Novo Aluno"])

        asyncio.run(run())

    def test_label_is_trimmed_before_create(self):
        async def run():
            store = InMemoryStore(["Fulano"], MatchPolicy.SUBSTRING)
            result = await NameResolver(store).resolve("  Novo Aluno  ")
            self.assertEqual(result.record.title, "Novo Aluno")

        asyncio.run(run())

    def test_second_resolve_after_create_finds_it(self):
        async def run():
            store = InMemoryStore([], MatchPolicy.EXACT)
            resolver = NameResolver(store)
            created = await resolver.resolve("Novo Aluno")
            again = await resolver.resolve("NOVO ALUNO")

            self.assertFalse(again.is_new)
            self.assertEqual(created.record.id, again.record.id)
            self.assertEqual(len(store.created), 1)

        asyncio.run(run())

    def test_label_of_only_combining_marks_matches_nothing(self):
        async def run():
            store = InMemoryStore(["MARIA SOUZA"], MatchPolicy.SUBSTRING)
            with self.assertRaises(ValidationError) as ctx:
                await NameResolver(store).resolve("\u0301\u0301\u0301")

            self.assertEqual(ctx.exception.reason, "empty_label")
            self.assertEqual(store.list_calls, 0)
            self.assertEqual(store.created, [])

        asyncio.run(run())

    def test_store_error_propagates_without_create(self):
        async def run():
            store = FailingStore([], MatchPolicy.SUBSTRING)
            with self.assertRaises(TransportError):
                await NameResolver(store).resolve("Novo Aluno")
            self.assertEqual(store.created, [])

        asyncio.run(run())


class TestLabelLocks(unittest.TestCase):
    def test_same_label_is_serialized(self):
        async def run():
            locks = LabelLocks()
            order: List[str] = []

            async def worker(label: str, tag: str) -> None:
                async with locks.hold(label):
                    order.append(f"{tag}-start")
                    await asyncio.sleep(0.01)
                    order.append(f"{tag}-end")

            await asyncio.gather(worker("José", "a"), worker("jose", "b"))

            self.assertEqual(order, ["a-start", "a-end", "b-start", "b-end"])
            self.assertEqual(len(locks), 0)

        asyncio.run(run())

    def test_different_labels_overlap(self):
        async def run():
            locks = LabelLocks()
            order: List[str] = []

            async def worker(label: str) -> None:
                async with locks.hold(label):
                    order.append(f"{label}-start")
                    await asyncio.sleep(0.01)
                    order.append(f"{label}-end")

            await asyncio.gather(worker("ana"), worker("bia"))

            self.assertEqual(order[:2], ["ana-start", "bia-start"])

        asyncio.run(run())

    def test_concurrent_resolves_create_once(self):
        async def run():
            store = InMemoryStore([], MatchPolicy.EXACT)
            resolver = NameResolver(store)
            locks = LabelLocks()

            async def resolve_locked(label: str):
                async with locks.hold(label):
                    return await resolver.resolve(label)

            results = await asyncio.gather(resolve_locked("Novo Aluno"), resolve_locked("novo aluno"))

            self.assertEqual(store.created, ["Novo Aluno"])
            self.assertEqual(results[0].record.id, results[1].record.id)

        asyncio.run(run())


if __name__ == "__main__":
    unittest.main()
