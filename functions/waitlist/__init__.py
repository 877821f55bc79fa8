"""Landing-page waitlist capture backed by a DynamoDB table."""

__version__ = "0.1.0"
