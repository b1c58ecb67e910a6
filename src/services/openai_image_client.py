"""OpenAI image client - edits (multipart) and generations (JSON).

Both operations share one shape: submit a job, receive ``{created, data: [{url}]}``,
then GET the first URL and decode the bytes. The submit+fetch sequence runs
under ``utils.retry.with_retry`` with linear backoff (2s, 4s, ...).

Each call builds its own ``httpx.AsyncClient`` capped at one connection, so no
connection pool or limit is shared between calls.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional, Union

import httpx
from pydantic import ValidationError

from models.image_transform import (
    AttemptState,
    EditRequest,
    GenerationRequest,
    ImageSize,
    ResultImage,
    ServiceResponse,
    parse_error_body,
)
from services.image_errors import (
    HttpError,
    ImageTransformError,
    InvalidAssetReferenceError,
    InvalidEndpointError,
    InvalidRequestError,
    InvalidResponseError,
    NetworkError,
    ServerError,
)
from services.image_preparation import ImageSource, decode_image, encode_png_with_alpha
from services.multipart import (
    build_edit_parts,
    content_type_header,
    encode_multipart,
    new_boundary,
)
from utils.config import ImageClientConfig
from utils.logging import get_logger, request_context
from utils.retry import RetryOutcome, SleepFn, linear_backoff, with_retry

logger = get_logger(__name__)

SubmitFn = Callable[[httpx.AsyncClient], Awaitable[str]]


def validate_url(url: str, error_cls: type = InvalidEndpointError) -> httpx.URL:
    """Parse an absolute http(s) URL or raise ``error_cls(url)``."""
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise error_cls(url) from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise error_cls(url)
    return parsed


class OpenAIImageClient:
    """Client for the OpenAI images API with bounded retries.

    Example usage:
        client = OpenAIImageClient(ImageClientConfig(api_key="sk-..."))
        result = await client.edit_image(photo_bytes, "make it a watercolor")
        Path("out.png").write_bytes(result.data)
    """

    def __init__(
        self,
        config: ImageClientConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the client.

        Args:
            config: API key, endpoint, timeouts and retry settings
            transport: Optional httpx transport (``httpx.MockTransport`` in tests)
            sleep: Awaitable used for backoff delays
            clock: Monotonic clock used for elapsed-time reporting
        """
        self.config = config
        self._transport = transport
        self._sleep = sleep
        self._clock = clock

    def _new_session(self) -> httpx.AsyncClient:
        """Fresh per-call session; never reused across operations."""
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.request_timeout),
            limits=httpx.Limits(max_connections=self.config.max_connections),
            transport=self._transport,
        )

    def _backoff(self, attempt: int) -> float:
        return linear_backoff(attempt, step=self.config.backoff_step)

    # =========================================================================
    # Public operations
    # =========================================================================

    async def edit_image(
        self,
        source: ImageSource,
        prompt: str,
        mask: Optional[ImageSource] = None,
    ) -> ResultImage:
        """Edit an image according to a natural-language instruction.

        Args:
            source: Photo bytes (any Pillow-readable format) or a Pillow image
            prompt: Non-empty edit instruction
            mask: Optional mask; transparent areas mark the region to edit

        Returns:
            ResultImage with the fetched bytes

        Raises:
            ImageEncodeError: If the source or mask cannot be prepared (no retry)
            ImageTransformError: The last failure after all attempts
        """
        outcome = await self.edit_image_outcome(source, prompt, mask)
        return outcome.unwrap()

    async def edit_image_outcome(
        self,
        source: ImageSource,
        prompt: str,
        mask: Optional[ImageSource] = None,
    ) -> RetryOutcome[ResultImage]:
        """Same as ``edit_image`` but returns failures as a value."""
        try:
            validate_url(self.config.edits_url)
            prompt = self._require_prompt(prompt)
            request = EditRequest(
                image_png=self._prepare(source),
                prompt=prompt,
                mask_png=self._prepare(mask) if mask is not None else None,
            )
        except ImageTransformError as e:
            logger.warning("edit_rejected", error=str(e), error_type=type(e).__name__)
            return RetryOutcome(state=AttemptState.FAILED, error=e)

        return await self._run(
            "edit",
            lambda client: self._submit_edit(client, request),
        )

    async def generate_image(
        self,
        prompt: str,
        size: Union[ImageSize, str] = ImageSize.SQUARE,
        count: int = 1,
    ) -> ResultImage:
        """Generate an image from a prompt.

        Args:
            prompt: Non-empty description of the image
            size: One of the ``ImageSize`` values
            count: Number of images requested (only the first is fetched)

        Returns:
            ResultImage with the fetched bytes

        Raises:
            InvalidRequestError: Bad prompt, size or count (no retry)
            ImageTransformError: The last failure after all attempts
        """
        outcome = await self.generate_image_outcome(prompt, size, count)
        return outcome.unwrap()

    async def generate_image_outcome(
        self,
        prompt: str,
        size: Union[ImageSize, str] = ImageSize.SQUARE,
        count: int = 1,
    ) -> RetryOutcome[ResultImage]:
        """Same as ``generate_image`` but returns failures as a value."""
        try:
            validate_url(self.config.generations_url)
            request = GenerationRequest(
                prompt=self._require_prompt(prompt),
                size=self._require_size(size),
                count=self._require_count(count),
            )
        except ImageTransformError as e:
            logger.warning("generation_rejected", error=str(e), error_type=type(e).__name__)
            return RetryOutcome(state=AttemptState.FAILED, error=e)

        return await self._run(
            "generate",
            lambda client: self._submit_generation(client, request),
        )

    # =========================================================================
    # Pre-flight validation
    # =========================================================================

    @staticmethod
    def _require_prompt(prompt: str) -> str:
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvalidRequestError("Please enter a prompt")
        return prompt

    @staticmethod
    def _require_size(size: Union[ImageSize, str]) -> ImageSize:
        try:
            return ImageSize(size)
        except ValueError as e:
            allowed = ", ".join(s.value for s in ImageSize)
            raise InvalidRequestError(f"Unsupported size {size!r}; expected one of {allowed}") from e

    @staticmethod
    def _require_count(count: int) -> int:
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise InvalidRequestError(f"Image count must be a positive integer, got {count!r}")
        return count

    def _prepare(self, image: ImageSource) -> bytes:
        return encode_png_with_alpha(
            image,
            max_dimension=self.config.max_dimension,
            max_bytes=self.config.max_upload_bytes,
        )

    # =========================================================================
    # Retry loop
    # =========================================================================

    async def _run(self, operation: str, submit: SubmitFn) -> RetryOutcome[ResultImage]:
        """Run submit+fetch under the retry policy in a dedicated session."""
        with request_context(operation=operation):
            started = self._clock()
            asset_url: Optional[str] = None

            logger.info("image_operation_started", max_attempts=self.config.max_attempts)

            async def attempt(number: int) -> ResultImage:
                nonlocal asset_url

                async def submit_and_fetch() -> ResultImage:
                    nonlocal asset_url
                    if asset_url is None:
                        asset_url = await submit(client)
                    else:
                        logger.info("reusing_asset_url", attempt=number)
                    return await self._fetch_asset(client, asset_url)

                logger.debug("attempt_started", attempt=number)
                try:
                    return await asyncio.wait_for(
                        submit_and_fetch(), timeout=self.config.resource_timeout
                    )
                except asyncio.TimeoutError as e:
                    raise NetworkError(
                        f"Request exceeded {self.config.resource_timeout:.0f}s"
                    ) from e
                finally:
                    # A failed fetch (or a timeout mid-fetch) forgets the URL
                    # only when the whole sequence is to be retried
                    if self.config.resubmit_on_fetch_failure:
                        asset_url = None

            async with self._new_session() as client:
                outcome = await with_retry(
                    attempt,
                    max_attempts=self.config.max_attempts,
                    backoff=self._backoff,
                    sleep=self._sleep,
                )

            elapsed = self._clock() - started
            if outcome.succeeded:
                outcome.value.attempts = outcome.attempts
                outcome.value.elapsed_seconds = elapsed
                logger.info(
                    "image_operation_succeeded",
                    attempts=outcome.attempts,
                    elapsed_s=round(elapsed, 2),
                    width=outcome.value.width,
                    height=outcome.value.height,
                )
            else:
                logger.error(
                    "image_operation_failed",
                    attempts=outcome.attempts,
                    elapsed_s=round(elapsed, 2),
                    error=str(outcome.error),
                    error_type=type(outcome.error).__name__,
                )
            return outcome

    # =========================================================================
    # Phases
    # =========================================================================

    async def _submit_edit(self, client: httpx.AsyncClient, request: EditRequest) -> str:
        """POST the multipart edit request and return the asset URL."""
        boundary = new_boundary()
        body = encode_multipart(
            build_edit_parts(
                request.image_png,
                request.prompt,
                mask_png=request.mask_png,
                model=self.config.edit_model,
                size=self.config.edit_size,
            ),
            boundary,
        )
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": content_type_header(boundary),
        }
        response = await self._send(
            client, "POST", self.config.edits_url, content=body, headers=headers
        )
        return self._parse_asset_url(response)

    async def _submit_generation(
        self, client: httpx.AsyncClient, request: GenerationRequest
    ) -> str:
        """POST the JSON generation request and return the asset URL."""
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        response = await self._send(
            client,
            "POST",
            self.config.generations_url,
            json=request.to_payload(self.config.generation_model),
            headers=headers,
        )
        return self._parse_asset_url(response)

    async def _fetch_asset(self, client: httpx.AsyncClient, url: str) -> ResultImage:
        """GET the asset URL (no auth header) and decode the bytes."""
        response = await self._send(client, "GET", url)
        image_format, width, height = decode_image(response.content)
        return ResultImage(
            data=response.content,
            format=image_format,
            width=width,
            height=height,
            source_url=url,
        )

    # =========================================================================
    # HTTP helpers
    # =========================================================================

    async def _send(
        self, client: httpx.AsyncClient, method: str, url: str, **kwargs
    ) -> httpx.Response:
        """Send a request, translating transport and status failures."""
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise NetworkError(f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Network error: {e}") from e

        self._raise_for_status(response)
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return

        detail = parse_error_body(response.content)
        if detail is not None:
            raise ServerError(
                detail.message,
                error_type=detail.type,
                param=detail.param,
                code=detail.code,
                status_code=response.status_code,
            )
        raise HttpError(response.status_code)

    @staticmethod
    def _parse_asset_url(response: httpx.Response) -> str:
        try:
            parsed = ServiceResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise InvalidResponseError(
                f"Invalid response from server ({e.error_count()} validation errors)"
            ) from e

        url = parsed.first_url
        validate_url(url, error_cls=InvalidAssetReferenceError)
        return url
