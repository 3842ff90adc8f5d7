"""User accounts and server-side task records."""

from .models import TaskRecord, TaskType, UserRecord
from .store import (
    authenticate,
    compare_hash,
    create_task_record,
    create_user,
    delete_task_record,
    find_user_by_email,
    get_task_record,
    hash_password,
    list_task_records,
    update_task_record,
    update_user_wallet,
)

__all__ = [
    "TaskRecord",
    "TaskType",
    "UserRecord",
    "authenticate",
    "compare_hash",
    "create_task_record",
    "create_user",
    "delete_task_record",
    "find_user_by_email",
    "get_task_record",
    "hash_password",
    "list_task_records",
    "update_task_record",
    "update_user_wallet",
]
