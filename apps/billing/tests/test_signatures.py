import hashlib
import hmac
import pytest
from apps.billing.exceptions import WebhookSignatureError
from apps.billing.signatures import compute_signature, verify_signature


BODY = b'{"meta": {"event_name": "subscription_created"}}'


class TestSignatures:

    def test_compute_signature_is_hex_hmac_sha256(self):
        expected = hmac.new(b'secret', BODY, hashlib.sha256).hexdigest()

        assert compute_signature(BODY, 'secret') == expected

    def test_valid_signature_passes(self):
        verify_signature(BODY, compute_signature(BODY, 'secret'), 'secret')

    def test_wrong_secret_rejected(self):
        with pytest.raises(WebhookSignatureError):
            verify_signature(BODY, compute_signature(BODY, 'other'), 'secret')

    def test_tampered_body_rejected(self):
        signature = compute_signature(BODY, 'secret')

        with pytest.raises(WebhookSignatureError):
            verify_signature(BODY + b' ', signature, 'secret')

    def test_missing_signature_rejected(self):
        with pytest.raises(WebhookSignatureError, match='Missing'):
            verify_signature(BODY, '', 'secret')

    def test_unconfigured_secret_rejects_everything(self):
        with pytest.raises(WebhookSignatureError, match='not configured'):
            verify_signature(BODY, compute_signature(BODY, ''), '')

    def test_truncated_signature_rejected(self):
        signature = compute_signature(BODY, 'secret')

        with pytest.raises(WebhookSignatureError):
            verify_signature(BODY, signature[:-2], 'secret')
