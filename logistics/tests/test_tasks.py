"""
Scheduled closing summary task tests
"""

from django.test import TestCase

from logistics.tasks import log_daily_closing_summary

from .factories import create_order, days_ago


class TestDailyClosingSummaryTask(TestCase):

    def test_summarises_backlog_without_closing(self):
        create_order(delivered_at=days_ago(1))
        create_order(cancelled_at=days_ago(3), total_charged=0, commission=10, provider_payout=-10, is_charged=False)
        create_order()

        with self.assertLogs('logistics.tasks', level='INFO') as logs:
            result = log_daily_closing_summary()

        self.assertEqual(result['orders'], 2)
        self.assertEqual(result['total_charged'], 50)
        self.assertEqual(result['commission'], 20)
        self.assertEqual(result['warnings'], 0)
        self.assertIn('[CLOSURE TASK]', logs.output[-1])

    def test_empty_backlog(self):
        result = log_daily_closing_summary()
        self.assertEqual(result['orders'], 0)
