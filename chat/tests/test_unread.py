import asyncio

from django.test import SimpleTestCase

from chat.unread import UnreadReconciler


async def settle(rounds=20):
    for _ in range(rounds):
        await asyncio.sleep(0)


class UnreadReconcilerTests(SimpleTestCase):
    async def test_initial_count_is_published(self):
        published = []

        async def recount():
            return 3

        async def publish(count):
            published.append(count)

        reconciler = UnreadReconciler(recount, publish)
        reconciler.start()
        await settle()
        await reconciler.stop()

        self.assertEqual(published, [3])

    async def test_burst_during_recount_costs_one_more_recount(self):
        gate = asyncio.Event()
        results = iter([1, 5])
        calls = []
        published = []

        async def recount():
            calls.append(len(calls))
            await gate.wait()
            return next(results)

        async def publish(count):
            published.append(count)

        reconciler = UnreadReconciler(recount, publish)
        reconciler.start()
        await settle()
        for _ in range(5):
            reconciler.invalidate()
        gate.set()
        await settle()
        await reconciler.stop()

        self.assertEqual(len(calls), 2)
        self.assertEqual(published, [1, 5])

    async def test_unchanged_count_is_not_republished(self):
        published = []

        async def recount():
            return 2

        async def publish(count):
            published.append(count)

        reconciler = UnreadReconciler(recount, publish)
        reconciler.start()
        await settle()
        reconciler.invalidate()
        await settle()
        await reconciler.stop()

        self.assertEqual(published, [2])

    async def test_failed_recount_is_logged_and_next_signal_recovers(self):
        results = iter([RuntimeError('db gone'), 4])
        published = []

        async def recount():
            result = next(results)
            if isinstance(result, Exception):
                raise result
            return result

        async def publish(count):
            published.append(count)

        reconciler = UnreadReconciler(recount, publish)
        with self.assertLogs('chat.unread', level='ERROR'):
            reconciler.start()
            await settle()
        reconciler.invalidate()
        await settle()
        await reconciler.stop()

        self.assertEqual(published, [4])

    async def test_failed_publish_is_logged_and_retried_on_next_signal(self):
        attempts = []
        published = []

        async def recount():
            return 6

        async def publish(count):
            attempts.append(count)
            if len(attempts) == 1:
                raise ConnectionError('socket closed')
            published.append(count)

        reconciler = UnreadReconciler(recount, publish)
        with self.assertLogs('chat.unread', level='ERROR'):
            reconciler.start()
            await settle()
        self.assertFalse(reconciler._task.done())
        reconciler.invalidate()
        await settle()
        await reconciler.stop()

        self.assertEqual(attempts, [6, 6])
        self.assertEqual(published, [6])

    async def test_stop_without_start(self):
        async def recount():
            return 0

        async def publish(count):
            pass

        await UnreadReconciler(recount, publish).stop()
