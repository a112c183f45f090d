"""AWS Lambda handler for the cultural events calendar."""
import json
import logging
import time
from typing import Any, Dict

from processor.calendar_session import CalendarSession
from processor.errors import ValidationError
from processor.event_processor import EventProcessor
from processor.models import CalendarEvent
from scraper.gemini_events import GeminiEventSearchClient
from settings import Settings
from storage.source_registry import SourceRegistry


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {'statusCode': status_code, 'body': json.dumps(body)}


def _sources_body(session: CalendarSession) -> Dict[str, Any]:
    return {'sources': [source.to_dict() for source in session.registry.list()]}


def build_session(settings: Settings) -> CalendarSession:
    """Wire registry, search client and processor from settings."""
    registry = SourceRegistry(settings.create_store())
    client = GeminiEventSearchClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        timeout=settings.timeout_seconds,
        max_retries=settings.max_retries,
        lookahead_months=settings.lookahead_months
    )
    processor = EventProcessor(id_strategy=settings.event_id_strategy)
    return CalendarSession(registry, client, processor=processor)


def _handle_refresh(session: CalendarSession, start_time: float) -> Dict[str, Any]:
    if not session.refresh():
        return _response(500, {
            'message': session.error,
            'duration_seconds': round(time.time() - start_time, 2)
        })

    events = []
    for event in session.events:
        event_data = event.to_dict()
        event_data['style'] = session.style_for(event).to_dict()
        events.append(event_data)

    return _response(200, {
        'message': 'Refresh completed successfully',
        'events': events,
        'grounding_sources': [s.to_dict() for s in session.grounding_sources],
        'statistics': {
            'active_sources': len(session.registry.active_urls()),
            'events_found': len(session.events),
            'duration_seconds': round(time.time() - start_time, 2)
        }
    })


def _handle_export(
    session: CalendarSession,
    event: Dict[str, Any],
    start_time: float
) -> Dict[str, Any]:
    event_ids = event.get('event_ids')
    listed = event.get('events')

    # Ids only mean something against the event set they came from
    if listed is not None:
        try:
            session.restore_events([CalendarEvent.from_dict(item) for item in listed])
        except (KeyError, TypeError) as e:
            return _response(400, {'message': f"Invalid events payload: {e}"})
    elif event_ids is not None:
        return _response(400, {
            'message': 'event_ids must be sent together with the events they refer to'
        })
    elif not session.refresh():
        return _response(500, {
            'message': session.error,
            'duration_seconds': round(time.time() - start_time, 2)
        })

    if event_ids is None:
        event_ids = [calendar_event.id for calendar_event in session.events]
    for event_id in event_ids:
        if event_id not in session.selection:
            session.toggle_selection(event_id)
    session.selection.reconcile(calendar_event.id for calendar_event in session.events)

    export = session.export_selected()
    if export is None:
        return _response(400, {'message': 'No events selected for export'})

    return {
        'statusCode': 200,
        'headers': {
            'Content-Type': export.mime_type,
            'Content-Disposition': f'attachment; filename="{export.filename}"'
        },
        'body': export.content
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for the cultural events calendar.

    Supported actions (event["action"], default "export"):
        list_sources, add_source (url), toggle_source (id),
        remove_source (id), refresh,
        export (events from a refresh plus optional event_ids; with
        neither, refreshes and exports everything)

    Args:
        event: Invocation payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and body
    """
    settings = Settings.from_env()

    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    event = event or {}
    action = event.get('action', 'export')
    logger.info(
        f"Lambda execution started",
        extra={'action': action, 'model': settings.gemini_model}
    )

    try:
        session = build_session(settings)

        if action == 'list_sources':
            return _response(200, _sources_body(session))

        if action == 'add_source':
            try:
                source = session.add_source(event.get('url', ''))
            except ValidationError as e:
                logger.info(f"Rejected source URL: {e}")
                return _response(400, {'message': str(e)})
            return _response(201, {'source': source.to_dict()})

        if action == 'toggle_source':
            session.toggle_source(event.get('id', ''))
            return _response(200, _sources_body(session))

        if action == 'remove_source':
            session.remove_source(event.get('id', ''))
            return _response(200, _sources_body(session))

        if action == 'refresh':
            response = _handle_refresh(session, start_time)
        elif action == 'export':
            response = _handle_export(session, event, start_time)
        else:
            return _response(400, {'message': f"Unknown action '{action}'"})

        logger.info(
            f"Lambda execution completed",
            extra={
                'action': action,
                'status_code': response['statusCode'],
                'duration_seconds': round(time.time() - start_time, 2)
            }
        )
        return response

    except Exception as e:
        duration = time.time() - start_time

        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )

        return _response(500, {
            'message': 'Request failed',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(duration, 2)
        })
