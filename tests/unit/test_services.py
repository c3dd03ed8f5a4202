"""Unit tests for the domain accessor services."""

import pytest
from datetime import date, datetime, timedelta

from assetflow.storage.client import ChangeType


@pytest.mark.asyncio
async def test_user_lookups(user_service, users):
    """Test user getters, role lookup and role filtering."""
    manager = users["manager"]
    assert (await user_service.get_user_by_id(manager["id"])).data["username"] == "mark"
    assert (await user_service.get_user_by_username("priya")).data["role"] == "Project Manager"
    assert (await user_service.get_user_by_id("missing")).data is None
    assert await user_service.get_user_role(manager["id"]) == "Manager"
    assert await user_service.get_user_role("missing") is None

    await user_service.update_user_status(manager["id"], False)
    assert (await user_service.get_users_by_role("Manager")).data[0]["is_active"] is False
    assert (await user_service.get_users_by_role("Manager", active_only=True)).data == []
    assert len((await user_service.get_active_users()).data) == 3


@pytest.mark.asyncio
async def test_get_all_users_projection(user_service, users):
    result = await user_service.get_all_users({"limit": 2})
    assert len(result.data) == 2
    assert "updated_at" not in result.data[0]


@pytest.mark.asyncio
async def test_search_users_matches_any_column(user_service, users):
    """Test search matches full name, username or email."""
    by_name = await user_service.search_users("ADA")
    assert [u["username"] for u in by_name.data] == ["ada"]

    by_email = await user_service.search_users("priya@example")
    assert [u["username"] for u in by_email.data] == ["priya"]


@pytest.mark.asyncio
async def test_update_user_stamps_updated_at(user_service, users):
    result = await user_service.update_last_login(users["employee"]["id"])
    assert result.data["last_login"] is not None
    assert result.data["updated_at"] is not None
    assert (await user_service.update_user("missing", {"full_name": "X"})).data is None


@pytest.mark.asyncio
async def test_user_stats(user_service, users):
    await user_service.update_user_status(users["employee"]["id"], False)
    stats = (await user_service.get_user_stats()).data
    assert stats["total"] == 4
    assert stats["active"] == 3
    assert stats["inactive"] == 1
    assert stats["by_role"]["Manager"] == 1


@pytest.mark.asyncio
async def test_document_lifecycle(document_service, users):
    """Test create, verify, reject, archive and stats."""
    analyst = users["manager"]["id"]
    first = (await document_service.create_document({"name": "Invoice", "document_type": "invoice", "category": "finance"})).data
    second = (await document_service.create_document({"name": "Contract", "document_type": "contract", "category": "legal"})).data
    assert first["status"] == "pending_verification"
    assert first["uploaded_date"] is not None

    verified = (await document_service.verify_document(first["id"], analyst, "verified")).data
    assert verified["verified_by"] == analyst
    assert verified["rejection_reason"] is None

    rejected = (await document_service.verify_document(second["id"], analyst, "rejected", "Unsigned")).data
    assert rejected["rejection_reason"] == "Unsigned"

    await document_service.archive_document(first["id"])
    assert [d["name"] for d in (await document_service.get_documents_by_status("archived")).data] == ["Invoice"]
    assert [d["name"] for d in (await document_service.get_documents_by_type("contract")).data] == ["Contract"]
    assert [d["name"] for d in (await document_service.get_documents_by_category("finance")).data] == ["Invoice"]

    stats = (await document_service.get_document_stats()).data
    assert stats == {
        "total_documents": 2,
        "verified_documents": 0,
        "pending_verification": 0,
        "archived_documents": 1,
    }


@pytest.mark.asyncio
async def test_verification_queue(document_service):
    document = (await document_service.create_document({"name": "Permit"})).data
    entry = (await document_service.add_to_verification_queue(document["id"], priority="high")).data
    assert entry["status"] == "pending"

    assert len((await document_service.get_verification_queue()).data) == 1
    await document_service.update_verification_queue(entry["id"], {"status": "done"})
    assert (await document_service.get_verification_queue()).data == []


@pytest.mark.asyncio
async def test_asset_maintenance(maintenance_service):
    """Test asset queries by date, condition and maintenance status updates."""
    today = date(2024, 6, 1)
    due = (await maintenance_service.create_asset(
        {"name": "Forklift", "tag_id": "RFID-1", "category": "vehicle", "next_maintenance": today - timedelta(days=1)}
    )).data
    await maintenance_service.create_asset(
        {"name": "Printer", "tag_id": "RFID-2", "category": "office", "next_maintenance": today + timedelta(days=30)}
    )

    needing = (await maintenance_service.get_assets_needing_maintenance(today=today)).data
    assert [a["name"] for a in needing] == ["Forklift"]

    await maintenance_service.update_asset_condition(due["id"], "needs_repair")
    assert [a["name"] for a in (await maintenance_service.get_assets_by_condition("needs_repair")).data] == ["Forklift"]

    log = (await maintenance_service.create_maintenance_log(
        {"asset_id": due["id"], "maintenance_type": "repair", "scheduled_date": today}
    )).data
    started = (await maintenance_service.update_maintenance_status(log["id"], "in_progress")).data
    assert started["start_date"] is not None
    assert started["completion_date"] is None
    completed = (await maintenance_service.update_maintenance_status(log["id"], "completed")).data
    assert completed["completion_date"] is not None

    stats = (await maintenance_service.get_maintenance_stats()).data
    assert stats["total_assets"] == 2
    assert stats["needs_repair"] == 1
    assert stats["good_condition"] == 1


@pytest.mark.asyncio
async def test_scheduled_maintenance_windows(maintenance_service):
    today = date(2024, 6, 1)
    asset = (await maintenance_service.create_asset({"name": "Generator"})).data
    for offset in (-3, 2, 10):
        await maintenance_service.create_scheduled_maintenance(
            {
                "asset_id": asset["id"],
                "maintenance_type": "inspection",
                "scheduled_date": today + timedelta(days=offset),
            }
        )

    overdue = (await maintenance_service.get_overdue_maintenance(today=today)).data
    assert [s["scheduled_date"] for s in overdue] == [today - timedelta(days=3)]

    upcoming = (await maintenance_service.get_upcoming_maintenance(days=7, today=today)).data
    assert [s["scheduled_date"] for s in upcoming] == [today + timedelta(days=2)]


@pytest.mark.asyncio
async def test_alerts(maintenance_service):
    alert = (await maintenance_service.create_maintenance_alert({"alert_type": "overdue", "message": "Service overdue"})).data
    assert alert["is_resolved"] is False
    assert len((await maintenance_service.get_maintenance_alerts_by_type("overdue")).data) == 1

    resolved = (await maintenance_service.resolve_maintenance_alert(alert["id"], "tech-1")).data
    assert resolved["is_resolved"] is True
    assert resolved["resolved_at"] is not None
    assert (await maintenance_service.get_maintenance_alerts()).data == []


@pytest.mark.asyncio
async def test_rfid_scan_moves_asset(maintenance_service):
    asset = (await maintenance_service.create_asset({"name": "Laptop", "tag_id": "TAG-9", "location": "Store"})).data

    result = await maintenance_service.scan_asset_rfid("TAG-9", "clerk-1", location="Site A", action="check_out")
    assert result.data["asset"]["location"] == "Site A"
    assert result.data["scan"]["action"] == "check_out"

    history = (await maintenance_service.get_asset_rfid_tracking(asset["id"])).data
    assert [scan["location"] for scan in history] == ["Site A"]

    missing = await maintenance_service.scan_asset_rfid("TAG-404", "clerk-1")
    assert missing.error_code == "NOT_FOUND"


@pytest.mark.asyncio
async def test_activity_logging(activity_service, users):
    """Test activity helpers and stats."""
    user = users["employee"]
    await activity_service.log_login(user["id"], user["username"], ip_address="10.0.0.1")
    await activity_service.log_data_change(user["id"], user["username"], "asset", "a-1", "UPDATE", {"x": 1}, {"x": 2})
    await activity_service.log_activity({"user_id": user["id"], "action": "LOGIN", "metadata": {"via": "sso"}})

    by_user = (await activity_service.get_activities_by_user(user["id"])).data
    assert len(by_user) == 3
    change = (await activity_service.get_activities_by_entity("asset", "a-1")).data[0]
    assert change["action"] == "UPDATE_ASSET"
    assert change["new_values"] == {"x": 2}
    logins = (await activity_service.get_activities_by_action("LOGIN")).data
    assert "10.0.0.1" in [row["ip_address"] for row in logins]

    stats = (await activity_service.get_activity_stats()).data
    assert stats["total_activities"] == 3
    assert stats["recent_activities"] == 3
    assert stats["activities_by_action"] == {"LOGIN": 2, "UPDATE_ASSET": 1}
    assert len((await activity_service.get_recent_activities(limit=2)).data) == 2


@pytest.mark.asyncio
async def test_audit_log(activity_service):
    await activity_service.log_audit_event({"action": "ROLE_CHANGED", "resource": "users", "severity": "warning"})
    logs = (await activity_service.get_audit_logs()).data
    assert [entry["action"] for entry in logs] == ["ROLE_CHANGED"]


@pytest.mark.asyncio
async def test_workflow_instance_guarded_update(workflow_service, procurement_template, users):
    """Test an update with expected values only applies while they still hold."""
    instance = (await workflow_service.create_workflow_instance(
        {
            "workflow_id": procurement_template["id"],
            "request_type": "procurement_request",
            "current_step": 1,
            "total_steps": 2,
            "initiated_by": users["employee"]["id"],
        }
    )).data
    assert instance["status"] == "pending"
    assert instance["initiated_at"] is not None

    first = await workflow_service.update_workflow_instance(
        instance["id"], {"current_step": 2}, expected={"current_step": 1, "status": "pending"}
    )
    assert first.data["current_step"] == 2

    stale = await workflow_service.update_workflow_instance(
        instance["id"], {"current_step": 2}, expected={"current_step": 1, "status": "pending"}
    )
    assert stale.ok
    assert stale.data is None


@pytest.mark.asyncio
async def test_workflow_templates(workflow_service, procurement_template):
    steps = (await workflow_service.get_workflow_steps(procurement_template["id"])).data
    assert [s["step_order"] for s in steps] == [1, 2]

    active = (await workflow_service.get_active_workflow_for_type("procurement_request")).data
    assert active["id"] == procurement_template["id"]

    await workflow_service.update_workflow(procurement_template["id"], {"is_active": False})
    assert (await workflow_service.get_active_workflow_for_type("procurement_request")).data is None

    deleted = (await workflow_service.delete_workflow_steps(procurement_template["id"])).data
    assert len(deleted) == 2


@pytest.mark.asyncio
async def test_two_level_approval_request(workflow_service, users):
    """Test the manager then project manager approval request flow."""
    request = (await workflow_service.create_approval_request(
        {"request_type": "purchase", "request_data": {"amount": 1200}, "requested_by": users["employee"]["id"]}
    )).data
    assert request["requested_at"] is not None

    manager_ok = (await workflow_service.manager_approve_request(request["id"], users["manager"]["id"])).data
    assert manager_ok["status"] == "manager_approved"
    final = (await workflow_service.project_manager_approve_request(request["id"], users["project_manager"]["id"])).data
    assert final["status"] == "approved"
    assert final["project_manager_approved_at"] is not None

    other = (await workflow_service.create_approval_request(
        {"request_type": "purchase", "requested_by": users["employee"]["id"]}
    )).data
    rejected = (await workflow_service.reject_request(other["id"], users["manager"]["id"], "Over budget")).data
    assert rejected["rejected_by"] == users["manager"]["id"]
    assert len((await workflow_service.get_requests_by_user(users["employee"]["id"])).data) == 2
    assert len((await workflow_service.get_requests_by_status("rejected")).data) == 1


@pytest.mark.asyncio
async def test_notifications(notification_service, users):
    """Test creation, read tracking, stats and deletion."""
    user_id = users["manager"]["id"]
    first = (await notification_service.create_notification(
        user_id, "info", "Hi", "First", {"type": "asset", "id": "a-1", "metadata": {"k": "v"}}
    )).data
    assert first["related_entity_type"] == "asset"
    assert first["metadata"] == {"k": "v"}
    await notification_service.create_notification(user_id, "warning", "Heads up", "Second", priority="high")

    assert (await notification_service.get_unread_count(user_id)).data == 2
    read = (await notification_service.mark_as_read(first["id"])).data
    assert read["is_read"] is True
    assert read["read_at"] is not None
    assert len((await notification_service.get_user_notifications(user_id, unread_only=True)).data) == 1

    marked = (await notification_service.mark_all_as_read(user_id)).data
    assert len(marked) == 1
    assert (await notification_service.get_notification_stats(user_id)).data == {"unread": 0, "total": 2, "recent": 2}

    await notification_service.delete_notification(first["id"])
    assert len((await notification_service.get_user_notifications(user_id)).data) == 1


@pytest.mark.asyncio
async def test_system_announcement(notification_service, user_service, users):
    await user_service.update_user_status(users["employee"]["id"], False)
    created = (await notification_service.create_system_announcement("Maintenance", "Downtime at 6pm")).data
    assert len(created) == 3
    assert {n["type"] for n in created} == {"announcement"}


@pytest.mark.asyncio
async def test_user_notification_subscription(notification_service, users):
    received = []
    user_id = users["admin"]["id"]
    notification_service.subscribe_to_user_notifications(user_id, received.append)

    await notification_service.create_notification(user_id, "info", "One", "Mine")
    await notification_service.create_notification(users["manager"]["id"], "info", "Two", "Not mine")
    assert [e.event_type for e in received] == [ChangeType.INSERT]

    assert notification_service.unsubscribe_from_user_notifications(user_id) is True
    await notification_service.create_notification(user_id, "info", "Three", "After unsubscribe")
    assert len(received) == 1


@pytest.mark.asyncio
async def test_workflow_notification_messages(notification_service):
    instance = {
        "id": "inst-1",
        "workflow_id": "wf-1",
        "request_type": "procurement_request",
        "current_step": 2,
        "total_steps": 2,
        "completed_at": datetime(2024, 6, 1, 9, 30),
    }
    approval = (await notification_service.create_workflow_approval_notification(
        "approver", instance, {"step_name": "Project Manager Approval"}
    )).data
    assert approval["title"] == "Approval Required: procurement_request"
    assert "Step 2 of 2 (Project Manager Approval)" in approval["message"]
    assert approval["priority"] == "high"

    rejection = (await notification_service.create_workflow_rejection_notification(
        "requester", instance, "insufficient budget"
    )).data
    assert rejection["message"].endswith("Reason: insufficient budget")
    assert rejection["metadata"]["rejected_at"] == "2024-06-01T09:30:00"


@pytest.mark.asyncio
async def test_inventory_items(inventory_service):
    """Test item lookups, stock level queries and category stats."""
    bolts = (await inventory_service.create_item(
        {"name": "Bolts", "category": "hardware", "quantity": 5, "min_quantity": 10, "rfid_code": "INV-1"}
    )).data
    await inventory_service.create_item({"name": "Cable", "category": "hardware", "quantity": 0, "min_quantity": 2})
    paper = (await inventory_service.create_item(
        {"name": "Paper", "category": "office", "quantity": 50, "min_quantity": 10, "location": "Store B"}
    )).data
    await inventory_service.create_item({"name": "Tape", "category": "office", "quantity": 1})
    assert bolts["last_updated"] is not None
    assert bolts["status"] == "in_stock"

    low = (await inventory_service.get_low_stock_items()).data
    assert [i["name"] for i in low] == ["Cable", "Bolts"]
    assert [i["name"] for i in (await inventory_service.get_out_of_stock_items()).data] == ["Cable"]
    assert [i["name"] for i in (await inventory_service.get_items_by_category("hardware")).data] == ["Bolts", "Cable"]
    assert (await inventory_service.get_item_by_rfid("INV-1")).data["id"] == bolts["id"]

    filtered = await inventory_service.get_items_with_filters(category="hardware", min_quantity=1)
    assert [i["name"] for i in filtered.data] == ["Bolts"]
    assert [i["name"] for i in (await inventory_service.get_items_with_filters(location="store b")).data] == ["Paper"]

    await inventory_service.update_item_status(paper["id"], "low_stock")
    assert [i["name"] for i in (await inventory_service.get_items_by_status("low_stock")).data] == ["Paper"]

    assert (await inventory_service.get_category_stats()).data == [
        {"category": "hardware", "item_count": 2, "total_quantity": 5},
        {"category": "office", "item_count": 2, "total_quantity": 51},
    ]

    bulk = await inventory_service.bulk_update_quantities([{"item_id": bolts["id"], "quantity": 20}])
    assert bulk["success"] is True
    assert bulk["results"][0]["item"]["quantity"] == 20
    assert [i["name"] for i in (await inventory_service.get_low_stock_items()).data] == ["Cable"]

    stats = (await inventory_service.get_inventory_stats()).data
    assert stats == {"total_items": 4, "low_stock_items": 1, "out_of_stock_items": 0, "total_deliveries": 0}

    await inventory_service.delete_item(bolts["id"])
    assert (await inventory_service.get_item_by_id(bolts["id"])).data is None


@pytest.mark.asyncio
async def test_stock_movements(inventory_service):
    """Test check-in, check-out and transfer adjust the item and record movements."""
    item = (await inventory_service.create_item({"name": "Gloves", "quantity": 10, "location": "Store"})).data

    checked_in = await inventory_service.check_in_item(item["id"], 5, "Store", "clerk-1")
    assert checked_in.data["quantity"] == 15

    too_many = await inventory_service.check_out_item(item["id"], 20, "Store", "clerk-1")
    assert too_many.error == "Insufficient quantity available"
    assert too_many.error_code == "CONFLICT"
    assert (await inventory_service.get_item_by_id(item["id"])).data["quantity"] == 15

    checked_out = await inventory_service.check_out_item(item["id"], 4, "Store", "clerk-1", notes="Site work")
    assert checked_out.data["quantity"] == 11

    moved = await inventory_service.transfer_item(item["id"], "Store", "Site A", 11, "clerk-1")
    assert moved.data["location"] == "Site A"

    movements = (await inventory_service.get_inventory_movements(item["id"])).data
    assert sorted(m["movement_type"] for m in movements) == ["in", "out", "transfer"]
    assert len((await inventory_service.get_item_movement_history(item["id"], limit=2)).data) == 2

    missing = await inventory_service.check_in_item("missing", 1, "Store", "clerk-1")
    assert missing.error == "Item not found"
    assert missing.error_code == "NOT_FOUND"
    assert len((await inventory_service.get_inventory_movements()).data) == 3


@pytest.mark.asyncio
async def test_deliveries(inventory_service):
    shipped = (await inventory_service.create_delivery(
        {"item_name": "Desks", "quantity": 4, "delivery_date": date(2024, 6, 3)}
    )).data
    arriving = (await inventory_service.create_delivery(
        {"item_name": "Chairs", "quantity": 8, "delivery_date": date(2024, 6, 2)}
    )).data
    await inventory_service.create_delivery({"item_name": "Lamps", "delivery_date": date(2024, 6, 1)})
    assert shipped["status"] == "scheduled"

    delivered = (await inventory_service.update_delivery_status(shipped["id"], "delivered")).data
    assert delivered["actual_delivery_date"] is not None
    in_transit = (await inventory_service.update_delivery_status(arriving["id"], "in_transit")).data
    assert in_transit["actual_delivery_date"] is None

    assert [d["item_name"] for d in (await inventory_service.get_all_deliveries()).data] == ["Desks", "Chairs", "Lamps"]
    assert [d["item_name"] for d in (await inventory_service.get_deliveries_by_status("delivered")).data] == ["Desks"]
    assert (await inventory_service.get_delivery_stats()).data == {
        "total_deliveries": 3,
        "scheduled_deliveries": 1,
        "delivered": 1,
        "in_transit": 1,
    }


@pytest.mark.asyncio
async def test_inventory_alerts_and_subscription(inventory_service):
    received = []
    inventory_service.subscribe_to_items(received.append)
    item = (await inventory_service.create_item({"name": "Toner", "quantity": 1, "min_quantity": 3})).data
    assert [e.event_type for e in received] == [ChangeType.INSERT]

    alert = (await inventory_service.create_alert(
        {"item_id": item["id"], "alert_type": "low_stock", "message": "Toner is low", "priority": "high"}
    )).data
    assert [a["id"] for a in (await inventory_service.get_alerts_by_type("low_stock")).data] == [alert["id"]]

    resolved = (await inventory_service.resolve_alert(alert["id"], "clerk-1")).data
    assert resolved["is_resolved"] is True
    assert resolved["resolved_at"] is not None
    assert (await inventory_service.get_inventory_alerts()).data == []


@pytest.mark.asyncio
async def test_procurement_requests(procurement_service, users):
    """Test request approval and rejection bookkeeping."""
    employee, manager = users["employee"]["id"], users["manager"]["id"]
    laptop = (await procurement_service.create_request(
        {"item_name": "Laptop", "quantity": 2, "requested_by": employee, "department": "IT", "priority": "high"}
    )).data
    chair = (await procurement_service.create_request({"item_name": "Chair", "requested_by": manager})).data
    assert laptop["requested_date"] == date.today()
    assert laptop["status"] == "pending"

    approved = (await procurement_service.update_request_status(laptop["id"], "approved", manager)).data
    assert approved["approved_by"] == manager
    assert approved["approved_date"] == date.today()
    assert approved["updated_at"] is not None

    rejected = (await procurement_service.update_request_status(
        chair["id"], "rejected", manager, rejection_reason="Not in budget"
    )).data
    assert rejected["rejection_reason"] == "Not in budget"
    assert rejected["approved_by"] is None

    assert [r["item_name"] for r in (await procurement_service.get_requests_by_status("approved")).data] == ["Laptop"]
    assert [r["item_name"] for r in (await procurement_service.get_requests_by_user(employee)).data] == ["Laptop"]
    assert [r["item_name"] for r in (await procurement_service.get_requests_with_filters(department="IT")).data] == ["Laptop"]
    assert [r["item_name"] for r in (await procurement_service.get_requests_with_filters(search="CHA")).data] == ["Chair"]

    monitor = (await procurement_service.create_request({"item_name": "Monitor", "requested_by": employee})).data
    bulk = await procurement_service.bulk_update_request_status([monitor["id"], chair["id"]], "approved", manager)
    assert bulk["success"] is True
    assert [r["request"]["status"] for r in bulk["results"]] == ["approved", "approved"]

    stats = (await procurement_service.get_procurement_stats()).data
    assert stats["total_requests"] == 3
    assert stats["approved_requests"] == 3
    assert stats["pending_requests"] == 0


@pytest.mark.asyncio
async def test_purchase_orders(procurement_service):
    supplier = (await procurement_service.create_supplier({"name": "Acme"})).data
    order = (await procurement_service.create_purchase_order(
        {"order_number": "PO-1", "supplier_id": supplier["id"], "item_name": "Laptop", "quantity": 2, "total_amount": 2400.0}
    )).data
    await procurement_service.create_purchase_order({"order_number": "PO-2", "supplier_id": supplier["id"]})
    assert order["order_date"] == date.today()
    assert order["status"] == "pending"

    first = (await procurement_service.create_purchase_order_item(
        {"purchase_order_id": order["id"], "item_name": "Laptop", "quantity": 2, "unit_price": 1200.0}
    )).data
    second = (await procurement_service.create_purchase_order_item(
        {"purchase_order_id": order["id"], "item_name": "Dock", "quantity": 2}
    )).data
    updated = (await procurement_service.update_purchase_order_item(first["id"], {"total_price": 2400.0})).data
    assert updated["total_price"] == 2400.0
    await procurement_service.delete_purchase_order_item(second["id"])
    assert [i["item_name"] for i in (await procurement_service.get_purchase_order_items(order["id"])).data] == ["Laptop"]

    delivered = (await procurement_service.update_order_status(order["id"], "delivered")).data
    assert delivered["actual_delivery"] is not None
    assert [o["order_number"] for o in (await procurement_service.get_orders_by_status("delivered")).data] == ["PO-1"]
    assert len((await procurement_service.get_all_purchase_orders()).data) == 2

    stats = (await procurement_service.get_procurement_stats()).data
    assert (stats["total_orders"], stats["pending_orders"], stats["delivered_orders"]) == (2, 1, 1)


@pytest.mark.asyncio
async def test_suppliers_and_performance(procurement_service, users):
    """Test soft deletion, rating averages and supplier performance figures."""
    acme = (await procurement_service.create_supplier({"name": "Acme"})).data
    globex = (await procurement_service.create_supplier({"name": "Globex"})).data

    assert (await procurement_service.delete_supplier(globex["id"])).data["is_active"] is False
    assert [s["name"] for s in (await procurement_service.get_active_suppliers()).data] == ["Acme"]
    await procurement_service.reactivate_supplier(globex["id"])
    assert len((await procurement_service.get_active_suppliers()).data) == 2

    for score in (4, 5, 5):
        await procurement_service.rate_supplier({"supplier_id": acme["id"], "rating": score, "rated_by": users["manager"]["id"]})
    averaged = (await procurement_service.update_supplier_rating_average(acme["id"])).data
    assert averaged["rating"] == 4.67
    assert (await procurement_service.update_supplier_rating_average(globex["id"])).data is None

    for amount, status in ((1000.0, "delivered"), (500.0, "delivered"), (300.0, "pending")):
        order = (await procurement_service.create_purchase_order({"supplier_id": acme["id"], "total_amount": amount})).data
        await procurement_service.update_order_status(order["id"], status)

    assert (await procurement_service.get_supplier_performance(acme["id"])).data == {
        "total_orders": 3,
        "delivered_orders": 2,
        "delivery_rate": 66.67,
        "total_spent": 1500.0,
        "average_rating": 4.67,
        "total_ratings": 3,
    }
    idle = (await procurement_service.get_supplier_performance(globex["id"])).data
    assert (idle["total_orders"], idle["delivery_rate"], idle["average_rating"]) == (0, 0, 0)

    rating = (await procurement_service.get_supplier_ratings(acme["id"])).data[0]
    await procurement_service.delete_supplier_rating(rating["id"])
    assert len((await procurement_service.get_supplier_ratings(acme["id"])).data) == 2


@pytest.mark.asyncio
async def test_procurement_subscription(procurement_service, users):
    received = []
    procurement_service.subscribe_to_requests(received.append)
    await procurement_service.create_request({"item_name": "Projector", "requested_by": users["employee"]["id"]})
    assert [e.new["item_name"] for e in received] == ["Projector"]
