import json
import logging
import pika
import time
from typing import Any, Callable, Dict

from config.settings import get_rabbitmq_config, get_schedule_config, get_storage_config
from schedule_engine.errors import ParseError, ScheduleError, ValidationError
from schedule_engine.services.conflicts import validate_axes
from schedule_engine.services.storage import create_store
from schedule_engine.services.workspace import TenantWorkspace, WorkspaceRegistry
from schedule_engine.utils.serialization import (
    attendance_entry_from_dict,
    attendance_to_dict,
    entity_from_dict,
    layout_to_dict,
    parse_date,
    printable_to_dict,
    session_fields_from_dict,
    sessions_to_list,
)
from schedule_engine.utils.time_grid import TimeGrid

logger = logging.getLogger(__name__)


def _require(data: Dict[str, Any], key: str) -> Any:
    if key not in data or data[key] in (None, ""):
        raise ParseError(f"Missing '{key}' in message data")
    return data[key]


def _workspace(data: Dict[str, Any], registry: WorkspaceRegistry) -> TenantWorkspace:
    return registry.get(_require(data, "tenantId"))


def _success(message: str, workspace: TenantWorkspace = None, **payload) -> Dict[str, Any]:
    result = {"status": "success", "message": message, "data": payload}
    if workspace is not None:
        # Unsaved-changes indicator for the caller
        result["dirty"] = workspace.dirty
    return result


def handle_load_schedule(data, registry):
    workspace = registry.reload(_require(data, "tenantId"))
    return _success("Schedule loaded", workspace, sessions=sessions_to_list(workspace.repository))


def handle_get_schedule(data, registry):
    workspace = _workspace(data, registry)
    return _success("Schedule", workspace, sessions=sessions_to_list(workspace.repository))


def handle_check_conflict(data, registry):
    workspace = _workspace(data, registry)
    conflict = workspace.check_conflict(
        _require(data, "sessionId"), _require(data, "day"), _require(data, "timeSlot")
    )
    return _success("Conflict checked", workspace, conflict=conflict)


def handle_add_session(data, registry):
    workspace = _workspace(data, registry)
    session = _require(data, "session")
    fields = session_fields_from_dict(session)
    if "entity" not in fields:
        fields["entity"] = entity_from_dict(session)
    missing = {"group_id", "day", "time_slot", "duration"} - set(fields)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(sorted(missing))}")
    session_id = workspace.add_session(
        group_id=fields["group_id"],
        entity=fields["entity"],
        day=fields["day"],
        time_slot=fields["time_slot"],
        classroom=fields.get("classroom", ""),
        duration=fields["duration"],
    )
    return _success("Session added", workspace, sessionId=session_id)


def handle_add_entity_sessions(data, registry):
    workspace = _workspace(data, registry)
    occurrences = [session_fields_from_dict(o) for o in data.get("occurrences", [])]
    result = workspace.add_entity_with_sessions(
        _require(data, "entityType"), _require(data, "entity"), occurrences
    )
    return _success("Entity created", workspace, **result)


def handle_update_session(data, registry):
    workspace = _workspace(data, registry)
    session_id = _require(data, "sessionId")
    workspace.update_session(session_id, **session_fields_from_dict(_require(data, "fields")))
    return _success("Session updated", workspace, sessionId=session_id)


def handle_move_session(data, registry):
    workspace = _workspace(data, registry)
    session_id = _require(data, "sessionId")
    workspace.move_session(session_id, _require(data, "day"), _require(data, "timeSlot"))
    return _success("Session moved", workspace, sessionId=session_id)


def handle_duplicate_session(data, registry):
    workspace = _workspace(data, registry)
    copy_id = workspace.duplicate_session(_require(data, "sessionId"))
    return _success("Session duplicated", workspace, sessionId=copy_id)


def handle_remove_session(data, registry):
    workspace = _workspace(data, registry)
    session_id = _require(data, "sessionId")
    workspace.remove_session(session_id)
    return _success("Session removed", workspace, sessionId=session_id)


def handle_save_schedule(data, registry):
    workspace = _workspace(data, registry)
    workspace.save()
    return _success("Schedule saved", workspace)


def handle_get_layout(data, registry):
    workspace = _workspace(data, registry)
    geometry = workspace.layout(data.get("groupId"))
    return _success("Layout computed", workspace,
                    layout=[layout_to_dict(g) for g in geometry.values()])


def handle_get_printable(data, registry):
    workspace = _workspace(data, registry)
    rows = workspace.printable(data.get("groupId"))
    return _success("Printable schedule", workspace, rows=[printable_to_dict(r) for r in rows])


def handle_record_attendance(data, registry):
    workspace = _workspace(data, registry)
    entries = [attendance_entry_from_dict(r) for r in _require(data, "records")]
    records = workspace.record_attendance(entries)
    return _success("Attendance recorded", workspace,
                    records=[attendance_to_dict(r) for r in records])


def handle_attendance_sheet(data, registry):
    workspace = _workspace(data, registry)
    on = parse_date(data["date"]) if data.get("date") else None
    return _success("Attendance sheet", workspace,
                    **workspace.attendance_sheet(_require(data, "sessionId"), on))


def handle_attendance_report(data, registry):
    workspace = _workspace(data, registry)
    rows = workspace.attendance_report(parse_date(_require(data, "date")), data.get("groupId"))
    return _success("Attendance report", workspace, rows=rows)


def handle_restore_data(data, registry):
    schools = _require(data, "schools")
    registry.store.clear()
    registry.store.bulk_put(schools)
    registry.reset()
    logger.info(f"Restored {len(schools)} tenants")
    return _success("Data restored", tenants=len(schools))


COMMANDS: Dict[str, Callable[[Dict[str, Any], WorkspaceRegistry], Dict[str, Any]]] = {
    "load_schedule": handle_load_schedule,
    "get_schedule": handle_get_schedule,
    "check_conflict": handle_check_conflict,
    "add_session": handle_add_session,
    "add_entity_sessions": handle_add_entity_sessions,
    "update_session": handle_update_session,
    "move_session": handle_move_session,
    "duplicate_session": handle_duplicate_session,
    "remove_session": handle_remove_session,
    "save_schedule": handle_save_schedule,
    "get_layout": handle_get_layout,
    "get_printable": handle_get_printable,
    "record_attendance": handle_record_attendance,
    "attendance_sheet": handle_attendance_sheet,
    "attendance_report": handle_attendance_report,
    "restore_data": handle_restore_data,
}


def process_command(command: str, data: Dict[str, Any], registry: WorkspaceRegistry) -> Dict[str, Any]:
    """
    Runs one command against the tenant workspaces.

    Args:
        command: Message pattern (e.g. "move_session")
        data: Message payload
        registry: Loaded tenant workspaces

    Returns:
        Reply dictionary; failures become {"status": "error" | "not_found", ...}
    """
    if command == "test_connection":
        return {"status": "success", "message": "Connection established"}

    handler = COMMANDS.get(command)
    if handler is None:
        return {"status": "error", "message": f"Unknown command: {command}"}

    try:
        logger.info(f"Processing {command} request")
        return handler(data or {}, registry)

    except ValidationError as e:
        logger.warning(f"{command} rejected: {e.message}")
        return {"status": e.status, "message": e.message, "conflicts": e.conflicts}

    except ScheduleError as e:
        logger.warning(f"{command} failed: {e.message}")
        return {"status": e.status, "message": e.message}

    except Exception as e:
        logger.error(f"Error processing {command}: {e}", exc_info=True)
        return {"status": "error", "message": f"Error processing {command}: {str(e)}"}


def make_callback(registry: WorkspaceRegistry):
    """Builds the message callback bound to the tenant workspaces"""

    def callback(ch, method, properties, body):
        correlation_id = properties.correlation_id

        try:
            logger.info(f"Received message: {correlation_id}")
            message = json.loads(body)
            result = process_command(message.get("pattern"), message.get("data", {}), registry)

            if properties.reply_to:
                ch.basic_publish(
                    exchange="",
                    routing_key=properties.reply_to,
                    properties=pika.BasicProperties(correlation_id=correlation_id),
                    body=json.dumps(result),
                )
                logger.info(f"Response sent for correlation_id: {correlation_id}")

        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in message: {e}")

        except Exception as e:
            logger.error(f"Unexpected error in callback: {e}", exc_info=True)

        finally:
            try:
                ch.basic_ack(delivery_tag=method.delivery_tag)
            except Exception as e:
                logger.warning(f"Error acknowledging message: {e}")

    return callback


def create_registry() -> WorkspaceRegistry:
    schedule_config = get_schedule_config()
    return WorkspaceRegistry(
        store=create_store(get_storage_config()),
        grid=TimeGrid.from_config(schedule_config),
        axes=validate_axes(schedule_config["conflict_axes"]),
    )


def create_connection_and_channel(rabbitmq_config):
    """Create RabbitMQ connection and channel with proper configuration"""
    connection_params = pika.ConnectionParameters(
        host=rabbitmq_config["host"],
        port=rabbitmq_config["port"],
        virtual_host=rabbitmq_config["vhost"],
        credentials=pika.PlainCredentials(
            username=rabbitmq_config["username"], password=rabbitmq_config["password"]
        ),
        heartbeat=rabbitmq_config["heartbeat"],
        blocked_connection_timeout=300,
        socket_timeout=10,
        connection_attempts=rabbitmq_config["connection_attempts"],
        retry_delay=rabbitmq_config["retry_delay"],
    )

    connection = pika.BlockingConnection(connection_params)
    channel = connection.channel()

    queue_name = rabbitmq_config["queue_name"]
    channel.queue_declare(queue=queue_name, durable=True)
    # One message at a time: a tenant has a single writer
    channel.basic_qos(prefetch_count=1)

    return connection, channel, queue_name


def start_consumer(registry: WorkspaceRegistry = None):
    """Start the RabbitMQ consumer, reconnecting with backoff"""
    rabbitmq_config = get_rabbitmq_config()
    registry = registry or create_registry()
    callback = make_callback(registry)
    max_reconnect_attempts = 10
    reconnect_delay = 5
    current_attempt = 0

    while current_attempt < max_reconnect_attempts:
        connection = None
        channel = None

        try:
            logger.info(
                f"Starting consumer (attempt {current_attempt + 1}/{max_reconnect_attempts})"
            )

            connection, channel, queue_name = create_connection_and_channel(
                rabbitmq_config
            )
            current_attempt = 0

            channel.basic_consume(queue=queue_name, on_message_callback=callback)

            logger.info(f"Consumer started, listening on queue: {queue_name}")
            channel.start_consuming()

        except pika.exceptions.StreamLostError as e:
            logger.error(
                f"Connection lost: {e}. Attempt {current_attempt + 1}/{max_reconnect_attempts}"
            )
            current_attempt += 1

        except pika.exceptions.AMQPConnectionError as e:
            logger.error(
                f"AMQP Connection error: {e}. Attempt {current_attempt + 1}/{max_reconnect_attempts}"
            )
            current_attempt += 1

        except KeyboardInterrupt:
            logger.info("Shutdown signal received, stopping consumer...")
            break

        except Exception as e:
            logger.error(
                f"Unexpected error: {e}. Attempt {current_attempt + 1}/{max_reconnect_attempts}",
                exc_info=True,
            )
            current_attempt += 1

        finally:
            try:
                if channel and not channel.is_closed:
                    channel.stop_consuming()
                    channel.close()
            except Exception as e:
                logger.warning(f"Error closing channel: {e}")

            try:
                if connection and not connection.is_closed:
                    connection.close()
            except Exception as e:
                logger.warning(f"Error closing connection: {e}")

        if current_attempt < max_reconnect_attempts:
            logger.info(f"Reconnecting in {reconnect_delay} seconds...")
            time.sleep(reconnect_delay)
            reconnect_delay = min(reconnect_delay * 1.5, 60)

    logger.error(
        f"Max reconnection attempts ({max_reconnect_attempts}) reached. Exiting."
    )
