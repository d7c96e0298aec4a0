import json
from types import SimpleNamespace

import pytest

from schedule_engine.consumer import make_callback, process_command


class FakeChannel:
    def __init__(self):
        self.published = []
        self.acked = []

    def basic_publish(self, exchange, routing_key, properties, body):
        self.published.append((routing_key, properties.correlation_id, json.loads(body)))

    def basic_ack(self, delivery_tag):
        self.acked.append(delivery_tag)


def test_test_connection(registry):
    assert process_command("test_connection", {}, registry)["status"] == "success"


def test_unknown_command(registry):
    result = process_command("teleport", {}, registry)
    assert result["status"] == "error"
    assert "teleport" in result["message"]


def test_missing_tenant_id_is_an_error(registry):
    result = process_command("get_schedule", {}, registry)
    assert result["status"] == "error"


def test_unknown_tenant_is_not_found(registry):
    result = process_command("get_schedule", {"tenantId": "ghost"}, registry)
    assert result["status"] == "not_found"


def test_check_conflict_previews_drag(registry):
    data = {"tenantId": "school_1", "sessionId": "ss3", "day": "monday", "timeSlot": "09:30"}

    result = process_command("check_conflict", data, registry)

    assert result["data"]["conflict"] is True
    assert result["dirty"] is False


def test_add_move_save_round(registry, store):
    added = process_command("add_session", {
        "tenantId": "school_1",
        "session": {"groupId": "g2", "subjectId": "sub2", "day": "sunday",
                    "timeSlot": "10:00", "classroom": "102", "duration": 45},
    }, registry)
    assert added["status"] == "success"
    assert added["dirty"] is True
    session_id = added["data"]["sessionId"]

    moved = process_command("move_session", {
        "tenantId": "school_1", "sessionId": session_id, "day": "sunday", "timeSlot": "11:00",
    }, registry)
    assert moved["status"] == "success"

    saved = process_command("save_schedule", {"tenantId": "school_1"}, registry)
    assert saved["dirty"] is False
    stored = {s["id"]: s for s in store.get("school_1")["scheduledSessions"]}
    assert stored[session_id]["timeSlot"] == "11:00"


def test_conflicting_add_reports_conflicts(registry):
    result = process_command("add_session", {
        "tenantId": "school_1",
        "session": {"groupId": "g1", "subjectId": "sub2", "day": "monday",
                    "timeSlot": "09:30", "classroom": "102b", "duration": 30},
    }, registry)

    assert result["status"] == "error"
    assert result["conflicts"] == ["ss1"]


def test_add_with_both_references_is_rejected(registry):
    result = process_command("add_session", {
        "tenantId": "school_1",
        "session": {"groupId": "g1", "subjectId": "sub1", "courseId": "c1", "day": "friday",
                    "timeSlot": "10:00", "classroom": "1", "duration": 60},
    }, registry)

    assert result["status"] == "error"


def test_update_switches_to_course(registry):
    result = process_command("update_session", {
        "tenantId": "school_1", "sessionId": "ss1",
        "fields": {"entityType": "course", "entityId": "c1", "duration": "90"},
    }, registry)
    assert result["status"] == "success"

    sessions = process_command("get_schedule", {"tenantId": "school_1"}, registry)["data"]["sessions"]
    ss1 = next(s for s in sessions if s["id"] == "ss1")
    assert ss1["courseId"] == "c1"
    assert "subjectId" not in ss1
    assert ss1["duration"] == 90


def test_remove_unknown_session_is_not_found(registry):
    result = process_command("remove_session", {"tenantId": "school_1", "sessionId": "zzz"}, registry)
    assert result["status"] == "not_found"


def test_duplicate_then_layout(registry):
    duplicated = process_command("duplicate_session", {"tenantId": "school_1", "sessionId": "ss1"},
                                 registry)
    copy_id = duplicated["data"]["sessionId"]

    result = process_command("get_layout", {"tenantId": "school_1", "groupId": "g1"}, registry)

    layout = {g["sessionId"]: g for g in result["data"]["layout"]}
    assert layout["ss1"]["maxColumns"] == 2
    assert {layout["ss1"]["column"], layout[copy_id]["column"]} == {0, 1}


def test_printable_rows(registry):
    result = process_command("get_printable", {"tenantId": "school_1", "groupId": "g1"}, registry)

    assert [(r["day"], r["start"], r["end"]) for r in result["data"]["rows"]] == [
        ("monday", "09:00", "10:00"),
        ("tuesday", "14:00", "15:30"),
    ]


def test_attendance_commands(registry):
    record = {"tenantId": "school_1", "records": [
        {"studentId": "st1", "sessionId": "ss1", "date": "2024-05-10", "status": "present"},
    ]}
    process_command("record_attendance", record, registry)
    record["records"][0]["status"] = "absent"
    result = process_command("record_attendance", record, registry)
    assert result["data"]["records"][0]["status"] == "absent"

    report = process_command("attendance_report", {"tenantId": "school_1", "date": "2024-05-10"},
                             registry)
    assert [(r["student_name"], r["status"]) for r in report["data"]["rows"]] == [("Ahmed", "absent")]

    sheet = process_command("attendance_sheet", {"tenantId": "school_1", "sessionId": "ss1",
                                                 "date": "2024-05-10"}, registry)
    assert sheet["data"]["recorded"] is True


def test_invalid_attendance_status(registry):
    result = process_command("record_attendance", {"tenantId": "school_1", "records": [
        {"studentId": "st1", "sessionId": "ss1", "date": "2024-05-10", "status": "asleep"},
    ]}, registry)
    assert result["status"] == "error"


def test_add_entity_sessions(registry):
    result = process_command("add_entity_sessions", {
        "tenantId": "school_1",
        "entityType": "course",
        "entity": {"name": "Robotics", "teacherIds": ["t2"]},
        "occurrences": [{"groupId": "g2", "day": "thursday", "timeSlot": "16:00",
                         "classroom": "Lab", "duration": 90}],
    }, registry)

    assert result["status"] == "success"
    assert len(result["data"]["sessionIds"]) == 1


def test_restore_data_replaces_all_tenants(registry, store, school_snapshot):
    process_command("move_session", {"tenantId": "school_1", "sessionId": "ss1",
                                     "day": "friday", "timeSlot": "08:00"}, registry)
    other = dict(school_snapshot, id="school_2", scheduledSessions=[])

    result = process_command("restore_data", {"schools": [other]}, registry)

    assert result["data"]["tenants"] == 1
    assert store.get("school_1") is None
    assert process_command("get_schedule", {"tenantId": "school_2"}, registry)["data"]["sessions"] == []


def test_callback_replies_and_acks(registry):
    channel = FakeChannel()
    callback = make_callback(registry)
    properties = SimpleNamespace(correlation_id="abc", reply_to="replies")
    body = json.dumps({"pattern": "check_conflict", "data": {
        "tenantId": "school_1", "sessionId": "ss2", "day": "monday", "timeSlot": "09:00",
    }})

    callback(channel, SimpleNamespace(delivery_tag=7), properties, body)

    [(routing_key, correlation_id, reply)] = channel.published
    assert (routing_key, correlation_id) == ("replies", "abc")
    assert reply["data"]["conflict"] is False
    assert channel.acked == [7]


def test_callback_acks_invalid_json(registry):
    channel = FakeChannel()

    make_callback(registry)(channel, SimpleNamespace(delivery_tag=1),
                            SimpleNamespace(correlation_id="x", reply_to="r"), b"{broken")

    assert channel.published == []
    assert channel.acked == [1]
