"""AWS Lambda handler serving formatted calendars."""
import json
import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import unquote

from fetcher.calendar_fetcher import CalendarFetcher
from log_config import setup_logging
from processor.profiles import DEFAULT_FORMATTER
from settings import Settings, load_settings
from storage.calendar_cache import CalendarCache
from storage.calendar_service import CalendarError, CalendarService
from storage.extension_store import ExtensionStore


# Reused across invocations of a warm container
_service: Optional[CalendarService] = None


def get_calendar_service(settings: Settings) -> CalendarService:
    """Get the calendar service, creating it on first use."""
    global _service
    if _service is None:
        extension_store = None
        if settings.extensions_dir or settings.extensions_bucket:
            extension_store = ExtensionStore(
                directory=settings.extensions_dir,
                bucket=settings.extensions_bucket,
                prefix=settings.extensions_prefix,
            )
        _service = CalendarService(
            fetcher=CalendarFetcher(
                timeout=settings.timeout_seconds,
                user_agent=settings.user_agent,
            ),
            cache=CalendarCache(
                ttl_seconds=settings.cache_ttl,
                max_keys=settings.cache_max_keys,
            ),
            extension_store=extension_store,
            force_reload_timeout=settings.force_reload_timeout,
            respect_ical_refresh_interval=settings.respect_ical_refresh_interval,
            profiles_dir=settings.profiles_dir,
        )
    return _service


def _json_response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body)
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Handle GET /{formatter}/{calendarUrl} from API Gateway.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        Response dict with the formatted calendar or a JSON error
    """
    settings = load_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    path_params = event.get('pathParameters') or {}
    query_params = event.get('queryStringParameters') or {}

    formatter_name = path_params.get('formatter')
    calendar_url = unquote(path_params.get('calendarUrl') or '')
    wants_reload = query_params.get('reload') == 'true'

    if formatter_name == DEFAULT_FORMATTER:
        formatter_name = None

    if not calendar_url.startswith('http:') and not calendar_url.startswith('https:'):
        logger.warning(f"Rejected calendar URL: {calendar_url}")
        return _json_response(400, {'error': 'Requires HTTP or HTTPS protocol'})

    logger.info(
        f"Calendar request for {calendar_url}",
        extra={'formatter': formatter_name, 'reload': wants_reload}
    )

    try:
        service = get_calendar_service(settings)
        calendar = service.get_calendar(calendar_url, wants_reload, formatter_name)
    except Exception as e:
        logger.error(
            f"Calendar request failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        calendar = CalendarError(error='Internal error', details=str(e))

    duration = time.time() - start_time

    if isinstance(calendar, CalendarError):
        logger.error(
            f"{calendar.error}: {calendar.details}",
            extra={'duration_seconds': round(duration, 2)}
        )
        body = {'error': calendar.error}
        if settings.include_exceptions:
            body['details'] = calendar.details
        return _json_response(500, body)

    logger.info(
        f"Served calendar for {calendar_url}",
        extra={'duration_seconds': round(duration, 2)}
    )
    return {
        'statusCode': 200,
        'headers': {'Content-Type': 'text/calendar'},
        'body': calendar.to_ical()
    }
