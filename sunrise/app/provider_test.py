"""Unit tests for the sunrise/sunset provider client."""

import datetime
import json
import unittest

import httpx

from sunrise.app import provider


def d(day: int) -> datetime.date:
    return datetime.date(2024, 8, day)


def daily(
    sunrise: str = '6:30:00 AM',
    sunset: str = '8:45:00 PM',
    day_length: str = '14:15:00',
    **extra: object,
) -> dict[str, object]:
    result: dict[str, object] = {
        'sunrise': sunrise,
        'sunset': sunset,
        'solar_noon': '1:37:30 PM',
        'day_length': day_length,
        'timezone': 'Europe/Lisbon',
        'utc_offset': 60,
    }
    result.update(extra)
    return result


class RecordingTransport:
    """Captures requests and answers each with a canned handler."""

    def __init__(self, handler) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


def make_client(handler) -> tuple[provider.SunriseSunsetClient, RecordingTransport]:
    recorder = RecordingTransport(handler)
    http_client = httpx.Client(transport=httpx.MockTransport(recorder))
    client = provider.SunriseSunsetClient(
        base_url='https://provider.test', timeout=1.0, http_client=http_client
    )
    return client, recorder


class TestParseTime(unittest.TestCase):
    """Tests for parse_time."""

    def test_twelve_hour_with_space(self) -> None:
        self.assertEqual(provider.parse_time('5:30:12 AM'), datetime.time(5, 30, 12))

    def test_twelve_hour_without_space_lowercase(self) -> None:
        self.assertEqual(provider.parse_time('8:05:00pm'), datetime.time(20, 5, 0))

    def test_midnight_and_noon(self) -> None:
        self.assertEqual(provider.parse_time('12:00:00 AM'), datetime.time(0, 0, 0))
        self.assertEqual(provider.parse_time('12:00:00 PM'), datetime.time(12, 0, 0))

    def test_twenty_four_hour(self) -> None:
        self.assertEqual(provider.parse_time('17:45:00'), datetime.time(17, 45, 0))

    def test_iso_with_offset(self) -> None:
        self.assertEqual(
            provider.parse_time('2024-08-01T05:30:00+00:00'), datetime.time(5, 30, 0)
        )

    def test_iso_with_zulu(self) -> None:
        self.assertEqual(
            provider.parse_time('2024-08-01T19:45:10Z'), datetime.time(19, 45, 10)
        )

    def test_blank_and_none(self) -> None:
        self.assertIsNone(provider.parse_time(''))
        self.assertIsNone(provider.parse_time('   '))
        self.assertIsNone(provider.parse_time(None))

    def test_invalid_logs_warning_and_returns_none(self) -> None:
        with self.assertLogs(provider.logger, level='WARNING') as logs:
            self.assertIsNone(provider.parse_time('invalid'))
        self.assertIn("Failed to parse time 'invalid'", logs.output[0])

    def test_out_of_range_clock_returns_none(self) -> None:
        with self.assertLogs(provider.logger, level='WARNING'):
            self.assertIsNone(provider.parse_time('13:00:00 PM'))
            self.assertIsNone(provider.parse_time('2024-13-01T05:30:00'))


class TestParseDuration(unittest.TestCase):
    """Tests for parse_duration."""

    def test_parses_seconds(self) -> None:
        self.assertEqual(provider.parse_duration('14:15:30'), 51330)

    def test_full_day(self) -> None:
        self.assertEqual(provider.parse_duration('24:00:00'), 86400)

    def test_zero(self) -> None:
        self.assertEqual(provider.parse_duration('00:00:00'), 0)

    def test_malformed(self) -> None:
        self.assertIsNone(provider.parse_duration('invalid'))
        self.assertIsNone(provider.parse_duration('14:15'))
        self.assertIsNone(provider.parse_duration('1:2:3:4'))
        self.assertIsNone(provider.parse_duration('aa:bb:cc'))
        self.assertIsNone(provider.parse_duration(''))
        self.assertIsNone(provider.parse_duration(None))

    def test_longer_than_a_day_rejected(self) -> None:
        with self.assertLogs(provider.logger, level='WARNING'):
            self.assertIsNone(provider.parse_duration('25:00:00'))


class TestGoldenHour(unittest.TestCase):
    """Tests for golden hour derivation."""

    def test_one_hour_before_sunset(self) -> None:
        self.assertEqual(
            provider.golden_hour_before(datetime.time(20, 45)), datetime.time(19, 45)
        )

    def test_wraps_past_midnight(self) -> None:
        self.assertEqual(
            provider.golden_hour_before(datetime.time(0, 30)), datetime.time(23, 30)
        )

    def test_none_sunset(self) -> None:
        self.assertIsNone(provider.golden_hour_before(None))

    def test_parse_day_prefers_supplied_golden_hour(self) -> None:
        result = provider.parse_day(d(1), daily(golden_hour='7:58:00 PM'))
        self.assertEqual(result.golden_hour, datetime.time(19, 58))

    def test_parse_day_derives_golden_hour(self) -> None:
        result = provider.parse_day(d(1), daily())
        self.assertEqual(result.golden_hour, datetime.time(19, 45))

    def test_parse_day_null_sunset_gives_null_golden_hour(self) -> None:
        result = provider.parse_day(d(1), daily(sunrise='', sunset=''))
        self.assertIsNone(result.sunset)
        self.assertIsNone(result.golden_hour)


class TestClassifyResults(unittest.TestCase):
    """Tests for response shape classification and expansion."""

    def test_object_is_single_day(self) -> None:
        payload = provider.classify_results({'sunrise': '6:00:00 AM'})
        self.assertIsInstance(payload, provider.SingleDay)

    def test_array_is_multi_day(self) -> None:
        payload = provider.classify_results([{}, {}])
        self.assertIsInstance(payload, provider.MultiDay)

    def test_other_shapes_unrecognized(self) -> None:
        self.assertIsNone(provider.classify_results('nope'))
        self.assertIsNone(provider.classify_results(None))

    def test_expand_assigns_consecutive_dates(self) -> None:
        payload = provider.MultiDay(results=[{'n': 0}, {'n': 1}, {'n': 2}])
        expanded = provider.expand_payload(payload, d(1))
        self.assertEqual([day for day, _ in expanded], [d(1), d(2), d(3)])
        self.assertEqual([item['n'] for _, item in expanded], [0, 1, 2])

    def test_expand_skips_non_object_without_shifting_dates(self) -> None:
        """A null in the middle leaves later entries on their own dates."""
        payload = provider.classify_results([{'n': 0}, None, {'n': 2}])
        assert payload is not None
        with self.assertLogs(provider.logger, level='WARNING'):
            expanded = provider.expand_payload(payload, d(1))
        self.assertEqual(expanded, [(d(1), {'n': 0}), (d(3), {'n': 2})])

    def test_expand_single_day_uses_start(self) -> None:
        expanded = provider.expand_payload(provider.SingleDay(result={}), d(9))
        self.assertEqual(expanded, [(d(9), {})])


class TestDayResult(unittest.TestCase):
    """Tests for DayResult.record_fields."""

    def test_record_fields(self) -> None:
        result = provider.parse_day(d(1), daily())
        fields = result.record_fields()
        self.assertNotIn('date', fields)
        self.assertEqual(fields['sunrise'], datetime.time(6, 30))
        self.assertEqual(fields['day_length_seconds'], 51300)
        self.assertEqual(fields['timezone'], 'Europe/Lisbon')
        self.assertEqual(fields['utc_offset'], 60)
        self.assertEqual(
            json.loads(fields['raw_api_data'])['daily_result']['sunset'], '8:45:00 PM'
        )


class TestSunriseSunsetClient(unittest.TestCase):
    """Tests for SunriseSunsetClient.fetch."""

    def test_multi_day_request_and_response(self) -> None:
        """A range request sends date_start/date_end and maps array elements to days."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={'status': 'OK', 'results': [daily(), daily(), daily()]}
            )

        client, recorder = make_client(handler)
        results = client.fetch(38.7223, -9.1393, d(1), d(3))

        self.assertEqual([r.date for r in results], [d(1), d(2), d(3)])
        self.assertEqual(len(recorder.requests), 1)
        params = recorder.requests[0].url.params
        self.assertEqual(recorder.requests[0].url.path, '/json')
        self.assertEqual(params['lat'], '38.7223')
        self.assertEqual(params['lng'], '-9.1393')
        self.assertEqual(params['date_start'], '2024-08-01')
        self.assertEqual(params['date_end'], '2024-08-03')

    def test_single_day_request_and_response(self) -> None:
        """A one-day request sends date and accepts an object result."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={'status': 'OK', 'results': daily()})

        client, recorder = make_client(handler)
        results = client.fetch(38.7, -9.1, d(5), d(5))

        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].date, d(5))
        self.assertEqual(results[0].day_length_seconds, 51300)
        self.assertEqual(recorder.requests[0].url.params['date'], '2024-08-05')
        self.assertNotIn('date_start', recorder.requests[0].url.params)

    def test_http_error_status_raises(self) -> None:
        client, _ = make_client(lambda request: httpx.Response(500))
        with self.assertRaises(provider.UpstreamError) as ctx:
            client.fetch(0.0, 0.0, d(1), d(2))
        self.assertIn('500', str(ctx.exception))

    def test_timeout_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout('timed out', request=request)

        client, _ = make_client(handler)
        with self.assertLogs(provider.logger, level='ERROR'):
            with self.assertRaises(provider.UpstreamError):
                client.fetch(0.0, 0.0, d(1), d(2))

    def test_connection_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError('refused', request=request)

        client, _ = make_client(handler)
        with self.assertLogs(provider.logger, level='ERROR'):
            with self.assertRaises(provider.UpstreamError):
                client.fetch(0.0, 0.0, d(1), d(2))

    def test_non_json_body_raises(self) -> None:
        client, _ = make_client(lambda request: httpx.Response(200, text='<html>'))
        with self.assertRaises(provider.UpstreamError):
            client.fetch(0.0, 0.0, d(1), d(2))

    def test_invalid_request_status_is_soft(self) -> None:
        """An application-level error status logs a warning and yields no days."""
        client, _ = make_client(
            lambda request: httpx.Response(200, json={'status': 'INVALID_REQUEST'})
        )
        with self.assertLogs(provider.logger, level='WARNING') as logs:
            self.assertEqual(client.fetch(0.0, 0.0, d(1), d(2)), [])
        self.assertIn('Invalid request', logs.output[0])

    def test_invalid_date_status_is_soft(self) -> None:
        client, _ = make_client(
            lambda request: httpx.Response(200, json={'status': 'INVALID_DATE'})
        )
        with self.assertLogs(provider.logger, level='WARNING') as logs:
            self.assertEqual(client.fetch(0.0, 0.0, d(1), d(2)), [])
        self.assertIn('Invalid date range', logs.output[0])

    def test_unknown_error_status_logs_error(self) -> None:
        client, _ = make_client(
            lambda request: httpx.Response(200, json={'status': 'UNKNOWN_ERROR'})
        )
        with self.assertLogs(provider.logger, level='ERROR'):
            self.assertEqual(client.fetch(0.0, 0.0, d(1), d(2)), [])

    def test_per_day_error_status_skips_that_day(self) -> None:
        """A per-day error status drops only that day."""
        results = [daily(), {'status': 'INVALID_DATE'}, daily()]
        client, _ = make_client(
            lambda request: httpx.Response(200, json={'status': 'OK', 'results': results})
        )
        with self.assertLogs(provider.logger, level='WARNING'):
            fetched = client.fetch(0.0, 0.0, d(1), d(3))
        self.assertEqual([r.date for r in fetched], [d(1), d(3)])

    def test_null_result_keeps_later_days_aligned(self) -> None:
        """A null entry drops only its own day; the next entry keeps its date."""
        results = [daily(sunrise='5:00:00 AM'), None, daily(sunrise='5:02:00 AM')]
        client, _ = make_client(
            lambda request: httpx.Response(200, json={'status': 'OK', 'results': results})
        )
        with self.assertLogs(provider.logger, level='WARNING'):
            fetched = client.fetch(0.0, 0.0, d(1), d(3))
        self.assertEqual(
            {r.date: r.sunrise for r in fetched},
            {d(1): datetime.time(5, 0), d(3): datetime.time(5, 2)},
        )

    def test_unexpected_results_shape(self) -> None:
        client, _ = make_client(
            lambda request: httpx.Response(200, json={'status': 'OK', 'results': 'x'})
        )
        with self.assertLogs(provider.logger, level='ERROR'):
            self.assertEqual(client.fetch(0.0, 0.0, d(1), d(2)), [])

    def test_extra_results_past_range_ignored(self) -> None:
        results = [daily(), daily(), daily()]
        client, _ = make_client(
            lambda request: httpx.Response(200, json={'status': 'OK', 'results': results})
        )
        with self.assertLogs(provider.logger, level='WARNING'):
            fetched = client.fetch(0.0, 0.0, d(1), d(2))
        self.assertEqual([r.date for r in fetched], [d(1), d(2)])

    def test_unparseable_times_become_null(self) -> None:
        results = [daily(sunrise='garbage', sunset='also garbage')]
        client, _ = make_client(
            lambda request: httpx.Response(200, json={'status': 'OK', 'results': results})
        )
        with self.assertLogs(provider.logger, level='WARNING'):
            fetched = client.fetch(0.0, 0.0, d(1), d(1))
        self.assertIsNone(fetched[0].sunrise)
        self.assertIsNone(fetched[0].sunset)
        self.assertIsNone(fetched[0].golden_hour)


if __name__ == '__main__':
    unittest.main()
