"""
Tests for rate limiting and error translation.
"""
from decimal import Decimal
from unittest.mock import MagicMock, patch

import redis
from django.test import SimpleTestCase, override_settings
from rest_framework.response import Response
from rest_framework.test import APIRequestFactory
from rest_framework.views import APIView

from core.api import service_error_response, unexpected_error_response
from core.exceptions import (
    NotFoundError,
    ValidationError,
    AlreadyInvoicedError,
    InvalidTransitionError,
    InsufficientStockError,
    PersistenceError,
)
from core.rate_limiting import rate_limit, get_client_ip


class LimitedView(APIView):

    @rate_limit(max_requests=20, window_seconds=60)
    def get(self, request):
        return Response({'ok': True})


@override_settings(RATE_LIMIT_ENABLED=True)
class RateLimitTestCase(SimpleTestCase):
    """Test cases for the Redis fixed window limiter."""

    def setUp(self):
        self.factory = APIRequestFactory()
        self.view = LimitedView.as_view()

    def _client(self, count, ttl=42):
        client = MagicMock()
        client.incr.return_value = count
        client.ttl.return_value = ttl
        return client

    def test_request_within_limit(self):
        client = self._client(1)
        with patch('core.rate_limiting.get_redis_client', return_value=client):
            response = self.view(self.factory.get('/search/'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['X-RateLimit-Remaining'], '19')
        client.expire.assert_called_once()

    def test_request_over_limit(self):
        with patch('core.rate_limiting.get_redis_client', return_value=self._client(21)):
            response = self.view(self.factory.get('/search/'))

        self.assertEqual(response.status_code, 429)
        self.assertEqual(response['Retry-After'], '42')
        self.assertEqual(response.data['retry_after'], 42)

    def test_no_redis_allows_request(self):
        with patch('core.rate_limiting.get_redis_client', return_value=None):
            response = self.view(self.factory.get('/search/'))

        self.assertEqual(response.status_code, 200)

    def test_redis_error_allows_request(self):
        client = MagicMock()
        client.incr.side_effect = redis.ConnectionError('down')
        with patch('core.rate_limiting.get_redis_client', return_value=client):
            response = self.view(self.factory.get('/search/'))

        self.assertEqual(response.status_code, 200)

    @override_settings(RATE_LIMIT_ENABLED=False)
    def test_disabled(self):
        with patch('core.rate_limiting.get_redis_client') as get_client:
            response = self.view(self.factory.get('/search/'))

        self.assertEqual(response.status_code, 200)
        get_client.assert_not_called()

    def test_client_ip_from_forwarded_header(self):
        request = self.factory.get('/search/', HTTP_X_FORWARDED_FOR='10.0.0.7, 172.16.0.1')

        self.assertEqual(get_client_ip(request), '10.0.0.7')


class ServiceErrorResponseTestCase(SimpleTestCase):
    """Test cases for mapping domain errors to HTTP statuses."""

    def test_status_codes(self):
        cases = [
            (NotFoundError('Task 1 not found'), 404),
            (ValidationError('Quantity must be greater than zero'), 400),
            (AlreadyInvoicedError(7), 400),
            (InvalidTransitionError('invoice', 'paid', 'sent'), 409),
            (InsufficientStockError(1, Decimal('9'), Decimal('5.00')), 409),
            (PersistenceError('connection reset'), 503),
        ]
        for exc, expected in cases:
            self.assertEqual(service_error_response(exc).status_code, expected)

    def test_insufficient_stock_payload(self):
        response = service_error_response(InsufficientStockError(1, Decimal('9'), Decimal('5.00')))

        self.assertEqual(response.data['available'], '5.00')
        self.assertIn('available: 5.00', response.data['detail'])

    def test_persistence_detail_is_generic(self):
        response = service_error_response(PersistenceError('relation "invoicing_invoice" does not exist'))

        self.assertNotIn('relation', response.data['detail'])

    def test_unexpected_error(self):
        with self.assertLogs('core.api', level='ERROR'):
            response = unexpected_error_response(RuntimeError('boom'))

        self.assertEqual(response.status_code, 500)
