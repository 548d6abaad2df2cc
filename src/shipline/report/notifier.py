"""Best-effort delivery of build reports to a webhook."""

from __future__ import annotations

from pathlib import Path

import httpx
from pydantic import SecretStr

from shipline import __version__
from shipline.core.config import Config, NotifyConfig
from shipline.core.log import logger
from shipline.core.outcome import PipelineOutcome
from shipline.report.logtail import tail_log
from shipline.report.payload import BuildReport, build_report


class Notifier:
    """POST build reports to a webhook with bearer authentication.

    send() never raises for transport or HTTP errors. Notifications
    run after the build has finished; a failure here is logged and
    the build outcome stands.
    """

    def __init__(
        self,
        url: str | None,
        token: SecretStr | str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.url = url
        if isinstance(token, str):
            token = SecretStr(token)
        if token is not None and not token.get_secret_value():
            token = None
        self._token = token
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_config(cls, config: NotifyConfig) -> "Notifier":
        return cls(config.url, config.token, config.timeout)

    def headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"shipline/{__version__}",
        }
        if self._token is not None:
            headers["Authorization"] = (
                f"Bearer {self._token.get_secret_value()}"
            )
        return headers

    def send(self, report: BuildReport) -> bool:
        """POST the report.

        Returns:
            True if the webhook accepted it with a 2xx response
        """
        if not self.url:
            logger.warn("No notification URL configured; report not sent")
            return False

        if self._token is None:
            logger.debug("No notification token configured")

        # A malformed URL raises InvalidURL and a non-ASCII token raises
        # UnicodeEncodeError while the request is built
        try:
            with httpx.Client(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = client.post(
                    self.url,
                    content=report.to_json(),
                    headers=self.headers(),
                )
                response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.warn(
                "Build notification failed: {error}",
                error=str(e),
                status=report.status.value,
            )
            return False

        logger.info(
            "Build notification sent",
            status=report.status.value,
            http_status=response.status_code,
        )
        return True


def report_outcome(
    config: Config,
    outcome: PipelineOutcome,
    log_file: Path | None,
    notifier: Notifier | None = None,
) -> bool:
    """Excerpt the build log, build the report and send it.

    Args:
        config: Application configuration
        outcome: Final pipeline outcome
        log_file: Combined build log (notify.log_file overrides)
        notifier: Notifier to use (built from config if None)

    Returns:
        Whether the webhook accepted the report
    """
    excerpt = tail_log(
        config.notify.log_file or log_file,
        config.notify.tail_lines,
    )
    report = build_report(
        outcome,
        job_name=config.job.name,
        build_number=config.job.build_number,
        log_excerpt=excerpt,
    )
    logger.info(
        "Reporting build {status}",
        status=report.status.value,
        job=report.job_name,
        build=report.build_number,
    )

    notifier = notifier or Notifier.from_config(config.notify)
    return notifier.send(report)
