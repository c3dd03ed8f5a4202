"""Unit tests for the generic data client."""

import pytest

from assetflow.errors import PassthroughDatabaseError
from assetflow.storage.client import ChangeType, Filter, OrderBy, QueryOptions, QueryResult


async def _seed_users(client, count=3):
    rows = [
        {"username": f"user{i}", "email": f"user{i}@example.com", "role": "Employee", "full_name": f"User {i}"}
        for i in range(count)
    ]
    return (await client.query("users", "insert", {"data": rows})).unwrap()


@pytest.mark.asyncio
async def test_insert_and_select(data_client):
    """Test insert returns rows with generated ids and select reads them back."""
    inserted = await _seed_users(data_client)
    assert len(inserted) == 3
    assert all(len(row["id"]) == 36 for row in inserted)

    result = await data_client.query(
        "users",
        "select",
        QueryOptions(columns="id, username", order_by=OrderBy(column="username", ascending=False)),
    )
    assert result.ok
    assert [row["username"] for row in result.data] == ["user2", "user1", "user0"]
    assert set(result.data[0]) == {"id", "username"}


@pytest.mark.asyncio
async def test_select_filters_limit_offset(data_client):
    await _seed_users(data_client, count=5)

    result = await data_client.query(
        "users",
        "select",
        {
            "filters": [{"column": "username", "operator": "in", "value": ["user1", "user2", "user3"]}],
            "order_by": {"column": "username"},
            "limit": 2,
            "offset": 1,
        },
    )
    assert [row["username"] for row in result.data] == ["user2", "user3"]


@pytest.mark.asyncio
async def test_or_filters(data_client):
    await _seed_users(data_client)
    result = await data_client.query(
        "users",
        "select",
        QueryOptions(
            or_filters=[
                Filter(column="username", operator="eq", value="user0"),
                Filter(column="email", operator="ilike", value="USER2@%"),
            ],
            order_by=OrderBy(column="username"),
        ),
    )
    assert [row["username"] for row in result.data] == ["user0", "user2"]


@pytest.mark.asyncio
async def test_update_and_delete_return_rows(data_client):
    users = await _seed_users(data_client)
    target = users[0]["id"]

    updated = await data_client.query(
        "users",
        "update",
        {"data": {"role": "Manager"}, "filters": [{"column": "id", "value": target}]},
    )
    assert [row["role"] for row in updated.data] == ["Manager"]

    deleted = await data_client.query("users", "delete", {"filters": [{"column": "id", "value": target}]})
    assert [row["id"] for row in deleted.data] == [target]
    assert (await data_client.count("users")).data == 2


@pytest.mark.asyncio
async def test_update_without_filters_is_refused(data_client):
    """Test table-wide writes are refused and nothing changes."""
    await _seed_users(data_client)

    result = await data_client.query("users", "update", {"data": {"role": "Admin"}})
    assert result.error == "Update requires at least one filter"
    assert result.error_code == "DATABASE_ERROR"

    result = await data_client.query("users", "delete")
    assert result.error == "Delete requires at least one filter"
    assert (await data_client.count("users", [Filter(column="role", value="Admin")])).data == 0


@pytest.mark.asyncio
async def test_duplicate_entry_message(data_client):
    await _seed_users(data_client, count=1)
    result = await data_client.query("users", "insert", {"data": {"username": "user0", "role": "Employee"}})
    assert result.data is None
    assert result.error == "Duplicate entry - record already exists"


@pytest.mark.asyncio
async def test_errors_are_returned_not_raised(data_client):
    assert "Unknown table" in (await data_client.query("nope")).error
    assert (await data_client.query("users", "upsert")).error == "Unsupported operation: upsert"
    bad_operator = await data_client.query(
        "users", "select", {"filters": [{"column": "id", "operator": "regex", "value": "x"}]}
    )
    assert bad_operator.error == "Unsupported filter operator: regex"
    bad_column = await data_client.query("users", "select", {"columns": "id, shoe_size"})
    assert bad_column.error_code == "DATABASE_ERROR"


def test_query_result_helpers():
    assert QueryResult(data=[{"id": 1}, {"id": 2}]).first().data == {"id": 1}
    assert QueryResult(data=[]).first().data is None
    failed = QueryResult(error="boom", error_code="DATABASE_ERROR")
    assert failed.first() is failed
    with pytest.raises(PassthroughDatabaseError, match="boom"):
        failed.unwrap()


@pytest.mark.asyncio
async def test_subscription_receives_matching_events(data_client):
    """Test subscribers see inserts, updates and deletes that match their filter."""
    events = []
    filtered = []
    data_client.subscribe("users", events.append)
    data_client.subscribe("users", filtered.append, {"username": "user1"})

    users = await _seed_users(data_client, count=2)
    await data_client.query("users", "delete", {"filters": [{"column": "id", "value": users[1]["id"]}]})

    assert [e.event_type for e in events] == [ChangeType.INSERT, ChangeType.INSERT, ChangeType.DELETE]
    assert [e.event_type for e in filtered] == [ChangeType.INSERT, ChangeType.DELETE]
    assert filtered[1].old["username"] == "user1"


@pytest.mark.asyncio
async def test_async_and_failing_callbacks(data_client):
    seen = []

    async def record(event):
        seen.append(event.table)

    def explode(event):
        raise RuntimeError("subscriber bug")

    data_client.subscribe("users", explode)
    data_client.subscribe("users", record)

    result = await data_client.query("users", "insert", {"data": {"username": "u", "role": "Employee"}})
    assert result.ok
    assert seen == ["users"]


@pytest.mark.asyncio
async def test_unsubscribe(data_client):
    events = []
    subscription = data_client.subscribe("users", events.append)
    assert data_client.unsubscribe(subscription) is True
    assert subscription.active is False
    assert data_client.unsubscribe(subscription) is False

    await _seed_users(data_client, count=1)
    assert events == []
    assert data_client.subscribe("no_such_table", events.append) is None


@pytest.mark.asyncio
async def test_failed_write_publishes_nothing(data_client):
    events = []
    data_client.subscribe("users", events.append)
    await data_client.query("users", "insert", {"data": {"username": None, "role": "Employee"}})
    assert events == []


@pytest.mark.asyncio
async def test_batch_and_health_check(data_client):
    async def ok():
        return 1

    async def fail():
        raise ValueError("bad op")

    outcome = await data_client.batch([ok, fail, ok])
    assert outcome.results == [1, 1]
    assert outcome.errors == ["bad op"]
    assert outcome.success is False

    assert await data_client.health_check() == {"connected": True, "error": None}
