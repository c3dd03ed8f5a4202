"""Database schema for users, documents, assets, inventory, procurement and workflows.

Rows are read and written through ``DataClient`` as plain dictionaries; the
declarative classes exist to describe the tables and their defaults.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
)

from assetflow.storage.database import Base

__all__ = [
    "Base",
    "User",
    "Workflow",
    "WorkflowStep",
    "WorkflowInstance",
    "WorkflowApproval",
    "ApprovalRequest",
    "Notification",
    "SystemActivity",
    "AuditLog",
    "Document",
    "VerificationQueueEntry",
    "Asset",
    "MaintenanceLog",
    "ScheduledMaintenance",
    "MaintenanceAlert",
    "AssetRFIDTracking",
    "InventoryItem",
    "InventoryMovement",
    "Delivery",
    "InventoryAlert",
    "Supplier",
    "SupplierRating",
    "ProcurementRequest",
    "PurchaseOrder",
    "PurchaseOrderItem",
]


def _uuid() -> str:
    return str(uuid4())


class User(Base):
    """Application user."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    username = Column(String(150), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=True)
    full_name = Column(String(255), nullable=True)
    role = Column(String(100), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"


class Workflow(Base):
    """Workflow template."""

    __tablename__ = "workflows"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    workflow_type = Column(String(100), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Workflow(id={self.id}, name={self.name}, type={self.workflow_type})>"


class WorkflowStep(Base):
    """One position in a template's approval chain."""

    __tablename__ = "workflow_steps"

    id = Column(String(36), primary_key=True, default=_uuid)
    workflow_id = Column(
        String(36),
        ForeignKey("workflows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step_order = Column(Integer, nullable=False)
    step_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    required_role = Column(String(100), nullable=True)
    required_user_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class WorkflowInstance(Base):
    """One execution of a template against a request."""

    __tablename__ = "workflow_instances"

    id = Column(String(36), primary_key=True, default=_uuid)
    workflow_id = Column(String(36), ForeignKey("workflows.id"), nullable=False, index=True)
    request_type = Column(String(100), nullable=False, index=True)
    request_id = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    current_step = Column(Integer, nullable=False, default=1)
    total_steps = Column(Integer, nullable=False)
    initiated_by = Column(String(36), nullable=False, index=True)
    initiated_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<WorkflowInstance(id={self.id}, status={self.status}, step={self.current_step})>"


class WorkflowApproval(Base):
    """Outcome recorded for one step of an instance."""

    __tablename__ = "workflow_approvals"

    id = Column(String(36), primary_key=True, default=_uuid)
    workflow_instance_id = Column(
        String(36),
        ForeignKey("workflow_instances.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step_id = Column(String(36), nullable=True)
    step_order = Column(Integer, nullable=False)
    approved_by = Column(String(36), nullable=True)
    approval_status = Column(String(20), nullable=False, default="pending")
    approval_notes = Column(Text, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    due_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)


class ApprovalRequest(Base):
    """Two-level (manager, project manager) approval request."""

    __tablename__ = "approval_requests"

    id = Column(String(36), primary_key=True, default=_uuid)
    request_type = Column(String(100), nullable=False)
    request_data = Column(JSON, nullable=True)
    status = Column(String(30), nullable=False, default="pending", index=True)
    priority = Column(String(20), nullable=False, default="medium")
    requested_by = Column(String(36), nullable=False, index=True)
    requested_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    manager_approved_by = Column(String(36), nullable=True)
    manager_approved_at = Column(DateTime, nullable=True)
    project_manager_approved_by = Column(String(36), nullable=True)
    project_manager_approved_at = Column(DateTime, nullable=True)
    rejected_by = Column(String(36), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)


class Notification(Base):
    """Per-user message."""

    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    type = Column(String(30), nullable=False, default="info")
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    priority = Column(String(20), nullable=False, default="medium")
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    related_entity_type = Column(String(100), nullable=True)
    related_entity_id = Column(String(36), nullable=True)
    metadata_ = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=True)


class SystemActivity(Base):
    """User-facing activity feed entry."""

    __tablename__ = "system_activities"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=True, index=True)
    username = Column(String(150), nullable=True)
    action = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    entity_type = Column(String(100), nullable=True)
    entity_id = Column(String(36), nullable=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    metadata_ = Column("metadata", JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    session_id = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)


class AuditLog(Base):
    """Security-relevant audit event."""

    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=True, index=True)
    action = Column(String(100), nullable=False)
    resource = Column(String(100), nullable=True)
    resource_id = Column(String(36), nullable=True)
    details = Column(JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    severity = Column(String(20), nullable=False, default="info")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)


class Document(Base):
    """Uploaded document awaiting or past verification."""

    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    document_type = Column(String(100), nullable=True, index=True)
    category = Column(String(100), nullable=True, index=True)
    description = Column(Text, nullable=True)
    file_path = Column(String(1024), nullable=True)
    file_size = Column(Integer, nullable=True)
    file_type = Column(String(100), nullable=True)
    status = Column(String(30), nullable=False, default="pending_verification", index=True)
    uploaded_by = Column(String(36), nullable=True)
    uploaded_date = Column(DateTime, nullable=True)
    verified_by = Column(String(36), nullable=True)
    verified_date = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    tags = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)


class VerificationQueueEntry(Base):
    """Document waiting for an analyst."""

    __tablename__ = "verification_queue"

    id = Column(String(36), primary_key=True, default=_uuid)
    document_id = Column(String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    priority = Column(String(20), nullable=False, default="medium")
    assigned_to = Column(String(36), nullable=True)
    status = Column(String(30), nullable=False, default="pending", index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)


class Asset(Base):
    """Tracked physical asset."""

    __tablename__ = "assets"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    tag_id = Column(String(100), unique=True, nullable=True, index=True)
    category = Column(String(100), nullable=True, index=True)
    condition = Column(String(30), nullable=False, default="good", index=True)
    location = Column(String(255), nullable=True)
    department = Column(String(100), nullable=True)
    purchase_date = Column(Date, nullable=True)
    warranty_expiry = Column(Date, nullable=True)
    cost = Column(Float, nullable=True)
    supplier_id = Column(String(36), nullable=True)
    last_maintenance = Column(Date, nullable=True)
    next_maintenance = Column(Date, nullable=True)
    maintenance_interval = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)


class MaintenanceLog(Base):
    """Performed or in-progress maintenance work."""

    __tablename__ = "maintenance_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    asset_id = Column(String(36), ForeignKey("assets.id", ondelete="CASCADE"), nullable=False, index=True)
    maintenance_type = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(30), nullable=False, default="scheduled", index=True)
    priority = Column(String(20), nullable=False, default="medium")
    performed_by = Column(String(36), nullable=True)
    scheduled_date = Column(Date, nullable=True)
    start_date = Column(DateTime, nullable=True)
    completion_date = Column(DateTime, nullable=True)
    duration_hours = Column(Float, nullable=True)
    cost = Column(Float, nullable=True)
    parts_used = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)


class ScheduledMaintenance(Base):
    """Planned maintenance for an asset."""

    __tablename__ = "scheduled_maintenance"

    id = Column(String(36), primary_key=True, default=_uuid)
    asset_id = Column(String(36), ForeignKey("assets.id", ondelete="CASCADE"), nullable=False, index=True)
    maintenance_type = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    scheduled_date = Column(Date, nullable=False)
    assigned_to = Column(String(36), nullable=True)
    status = Column(String(30), nullable=False, default="scheduled", index=True)
    priority = Column(String(20), nullable=False, default="medium")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)


class MaintenanceAlert(Base):
    """Alert raised against an asset."""

    __tablename__ = "maintenance_alerts"

    id = Column(String(36), primary_key=True, default=_uuid)
    asset_id = Column(String(36), ForeignKey("assets.id", ondelete="CASCADE"), nullable=True, index=True)
    alert_type = Column(String(100), nullable=False)
    message = Column(Text, nullable=False)
    priority = Column(String(20), nullable=False, default="medium")
    is_resolved = Column(Boolean, nullable=False, default=False)
    resolved_by = Column(String(36), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class AssetRFIDTracking(Base):
    """RFID scan of an asset."""

    __tablename__ = "asset_rfid_tracking"

    id = Column(String(36), primary_key=True, default=_uuid)
    asset_id = Column(String(36), ForeignKey("assets.id", ondelete="CASCADE"), nullable=True, index=True)
    rfid_code = Column(String(100), nullable=False)
    action = Column(String(30), nullable=False, default="scan")
    location = Column(String(255), nullable=True)
    scanned_by = Column(String(36), nullable=True)
    scanned_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    notes = Column(Text, nullable=True)


class InventoryItem(Base):
    """Stocked consumable or part."""

    __tablename__ = "inventory_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    min_quantity = Column(Integer, nullable=True)
    max_quantity = Column(Integer, nullable=True)
    unit = Column(String(30), nullable=True)
    location = Column(String(255), nullable=True)
    rfid_code = Column(String(100), unique=True, nullable=True, index=True)
    status = Column(String(30), nullable=False, default="in_stock", index=True)
    cost_per_unit = Column(Float, nullable=True)
    supplier_id = Column(String(36), ForeignKey("suppliers.id"), nullable=True)
    last_updated = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<InventoryItem(id={self.id}, name={self.name}, quantity={self.quantity})>"


class InventoryMovement(Base):
    """Stock entering, leaving or moving between locations."""

    __tablename__ = "inventory_movements"

    id = Column(String(36), primary_key=True, default=_uuid)
    item_id = Column(String(36), ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True)
    movement_type = Column(String(30), nullable=False)
    quantity = Column(Integer, nullable=False)
    from_location = Column(String(255), nullable=True)
    to_location = Column(String(255), nullable=True)
    reason = Column(Text, nullable=True)
    reference_number = Column(String(100), nullable=True)
    performed_by = Column(String(36), nullable=True)
    movement_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    notes = Column(Text, nullable=True)


class Delivery(Base):
    __tablename__ = "deliveries"

    id = Column(String(36), primary_key=True, default=_uuid)
    item_name = Column(String(255), nullable=False)
    item_description = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    destination = Column(String(255), nullable=True)
    status = Column(String(30), nullable=False, default="scheduled", index=True)
    delivery_date = Column(Date, nullable=True)
    actual_delivery_date = Column(DateTime, nullable=True)
    rfid_code = Column(String(100), nullable=True)
    tracking_number = Column(String(100), nullable=True)
    delivered_by = Column(String(255), nullable=True)
    received_by = Column(String(36), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)


class InventoryAlert(Base):
    """Stock level alert raised against an item."""

    __tablename__ = "inventory_alerts"

    id = Column(String(36), primary_key=True, default=_uuid)
    item_id = Column(String(36), ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=True, index=True)
    alert_type = Column(String(100), nullable=False)
    message = Column(Text, nullable=False)
    priority = Column(String(20), nullable=False, default="medium")
    is_resolved = Column(Boolean, nullable=False, default=False)
    resolved_by = Column(String(36), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class Supplier(Base):
    """Vendor purchase orders are placed with."""

    __tablename__ = "suppliers"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    contact_person = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    rating = Column(Float, nullable=True)
    total_orders = Column(Integer, nullable=False, default=0)
    last_order_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Supplier(id={self.id}, name={self.name})>"


class SupplierRating(Base):
    __tablename__ = "supplier_ratings"

    id = Column(String(36), primary_key=True, default=_uuid)
    supplier_id = Column(String(36), ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Float, nullable=False)
    review = Column(Text, nullable=True)
    rated_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class ProcurementRequest(Base):
    """Employee request to buy something."""

    __tablename__ = "procurement_requests"

    id = Column(String(36), primary_key=True, default=_uuid)
    item_name = Column(String(255), nullable=False)
    item_description = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Float, nullable=True)
    total_amount = Column(Float, nullable=True)
    priority = Column(String(20), nullable=False, default="medium")
    status = Column(String(20), nullable=False, default="pending", index=True)
    requested_by = Column(String(36), nullable=False, index=True)
    requested_date = Column(Date, nullable=True)
    approved_by = Column(String(36), nullable=True)
    approved_date = Column(Date, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    department = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)


class PurchaseOrder(Base):
    """Order placed with a supplier."""

    __tablename__ = "purchase_orders"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_number = Column(String(100), unique=True, nullable=True)
    supplier_id = Column(String(36), ForeignKey("suppliers.id"), nullable=True, index=True)
    item_name = Column(String(255), nullable=True)
    item_description = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=True)
    unit_price = Column(Float, nullable=True)
    total_amount = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    order_date = Column(Date, nullable=True)
    expected_delivery = Column(Date, nullable=True)
    actual_delivery = Column(DateTime, nullable=True)
    rfid_code = Column(String(100), nullable=True)
    tracking_number = Column(String(100), nullable=True)
    created_by = Column(String(36), nullable=True)
    approved_by = Column(String(36), nullable=True)
    approved_date = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)


class PurchaseOrderItem(Base):
    """Line item of a purchase order."""

    __tablename__ = "purchase_order_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    purchase_order_id = Column(
        String(36),
        ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Float, nullable=True)
    total_price = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
