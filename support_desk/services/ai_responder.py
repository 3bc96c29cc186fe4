"""
AI response generation collaborators

The reconciled design never calls the generator from the request path:
a background process writes ``ai_response`` into the store and the
dashboard picks it up by re-reading. Two stand-ins exist:

- MockAIResponder: canned answers picked at random, used by the
  in-memory store to simulate the background write.
- WebhookAIDispatcher: fire-and-forget POST of a new ticket to an
  external automation webhook (alternate mode, enabled by
  ``AI_WEBHOOK_URL``).
"""
import asyncio
import random
import re
from typing import Any, Dict, Optional, Sequence

import httpx

from support_desk.config import get_settings
from support_desk.models.schemas import Ticket
from support_desk.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

TICKET_REF_PATTERN = re.compile(r"TKT-\d+")

RESPONSE_TEMPLATES = (
    "I've analyzed your request regarding \"{subject}\" and cross-referenced it "
    "with our knowledge base.\n\n"
    "**Recommended Actions:**\n"
    "1. **Immediate Steps**: Start with the most likely fixes from similar cases\n"
    "2. **Diagnostic Phase**: Automated checks will run on our systems\n"
    "3. **Resolution Path**: Apply the solution that matches the findings\n"
    "4. **Follow-up**: Monitor the situation to ensure stability\n\n"
    "**Estimated Resolution Time**: 4-6 hours.\n\n"
    "Is there any additional information you can provide that might help with the diagnosis?",

    "Thank you for submitting this support request. I've processed \"{subject}\" "
    "through our diagnostic system.\n\n"
    "**Phase 1 - Quick Fixes:** standard troubleshooting and configuration checks\n"
    "**Phase 2 - Advanced Diagnostics:** log review and connectivity tests\n"
    "**Phase 3 - Escalation (if needed):** specialist team involvement\n\n"
    "A technician will be in touch within the next 2 hours.",

    "I've completed the initial analysis of your support request.\n\n"
    "**Likely causes:** configuration drift from recent updates, permission "
    "changes, or software compatibility issues.\n\n"
    "A technician will verify the automated fixes and test the solution.\n\n"
    "**Your Reference Number**: Use ticket ID {reference} for all communications.",
)


class MockAIResponder:
    """Random-choice response generator standing in for the AI process"""

    def __init__(self, templates: Sequence[str] = RESPONSE_TEMPLATES, rng: Optional[random.Random] = None):
        self.templates = tuple(templates)
        self.rng = rng or random.Random()

    def generate(self, subject: str, description: str) -> str:
        """
        Produce an answer for a ticket.

        Args:
            subject: Ticket subject
            description: Ticket description (unused by the canned templates)

        Returns:
            Response text
        """
        match = TICKET_REF_PATTERN.search(subject)
        reference = match.group(0) if match else "TKT-NEW"
        template = self.rng.choice(self.templates)
        return template.format(subject=subject, reference=reference)


class WebhookAIDispatcher:
    """
    Posts new tickets to an external AI automation webhook

    Retries on rate limiting and server errors with exponential backoff.
    Never raises: a failed dispatch is logged and reported as False, the
    ticket itself is already persisted.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        backoff_base: float = 1.0
    ):
        self.webhook_url = webhook_url if webhook_url is not None else settings.ai_webhook_url
        self.timeout = timeout if timeout is not None else settings.ai_webhook_timeout
        self.max_retries = max_retries if max_retries is not None else settings.ai_webhook_max_retries
        self.transport = transport
        self.backoff_base = backoff_base
        self.headers = {
            "Content-Type": "application/json"
        }

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    @staticmethod
    def build_payload(ticket: Ticket) -> Dict[str, Any]:
        return {
            "ticketId": ticket.id,
            "subject": ticket.subject,
            "description": ticket.description,
            "priority": ticket.priority.value,
            "email": ticket.email,
            "fileUrl": ticket.file_url,
            "fileName": ticket.file_name,
        }

    async def dispatch(self, ticket: Ticket) -> bool:
        """
        Send a ticket to the webhook

        Args:
            ticket: Newly created ticket

        Returns:
            True if the webhook accepted the ticket
        """
        if not self.enabled:
            return False

        payload = self.build_payload(ticket)

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                    response = await client.post(self.webhook_url, json=payload, headers=self.headers)
                    response.raise_for_status()
                    logger.info(f"Dispatched ticket {ticket.id} to AI webhook")
                    return True

            except httpx.HTTPStatusError as e:
                if e.response.status_code in [429, 500, 502, 503, 504] and attempt < self.max_retries - 1:
                    wait_time = self.backoff_base * (2 ** attempt)  # Exponential backoff
                    logger.warning(
                        f"Webhook dispatch failed (attempt {attempt + 1}/{self.max_retries}), "
                        f"retrying in {wait_time}s: {e}"
                    )
                    await asyncio.sleep(wait_time)
                    continue
                logger.error(f"Webhook rejected ticket {ticket.id}: {e}")
                return False
            except httpx.HTTPError as e:
                logger.error(f"Webhook dispatch for ticket {ticket.id} failed: {e}")
                return False

        return False
