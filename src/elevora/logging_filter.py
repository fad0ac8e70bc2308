"""
Logging Filter for PII Redaction
Redacts emails, bearer tokens and provider secrets from log records
"""
import hashlib
import logging
import re


class PIIRedactionFilter(logging.Filter):
    """
    Logging filter that redacts PII and sensitive data from log messages

    Redacts:
    - Email addresses (keeps a short hash so the same user can be correlated)
    - Bearer tokens and Authorization headers
    - Stripe keys and webhook signing secrets
    - Svix / Stripe signature header values
    """

    EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b')

    SECRET_PATTERNS = [
        re.compile(r'\b(sk|rk)_(live|test)_[A-Za-z0-9]{8,}'),
        re.compile(r'\bwhsec_[A-Za-z0-9+/=]{8,}'),
    ]

    BEARER_PATTERN = re.compile(r'(bearer\s+)([A-Za-z0-9_\-\.]{20,})', re.IGNORECASE)

    SIGNATURE_PATTERN = re.compile(r'((?:svix|stripe)-signature["\']?\s*[:=]\s*["\']?)([^\s"\']+)', re.IGNORECASE)

    def filter(self, record: logging.LogRecord) -> bool:
        """Always allow the record, just rewrite it"""
        if isinstance(record.msg, str):
            record.msg = self.redact_pii(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self.redact_pii(v) if isinstance(v, str) else v
                               for k, v in record.args.items()}
            elif isinstance(record.args, (list, tuple)):
                record.args = tuple(self.redact_pii(arg) if isinstance(arg, str) else arg
                                    for arg in record.args)

        return True

    def redact_pii(self, text: str) -> str:
        if not text:
            return text

        redacted = self.EMAIL_PATTERN.sub(self._redact_email, text)

        for pattern in self.SECRET_PATTERNS:
            redacted = pattern.sub('***REDACTED***', redacted)

        redacted = self.BEARER_PATTERN.sub(r'\1***REDACTED***', redacted)
        redacted = self.SIGNATURE_PATTERN.sub(r'\1***REDACTED***', redacted)

        return redacted

    def _redact_email(self, match: re.Match) -> str:
        email = match.group(0)
        local, domain = email.split('@', 1)
        if len(local) <= 2:
            return f'**@{domain}'

        email_hash = hashlib.sha256(email.encode()).hexdigest()[:6]
        return f'{local[:2]}***{email_hash}@{domain}'
