"""
Activity Logging Service
Audit trail of staff actions on seminars, attendance and makeups
"""

import json
from datetime import timedelta
from typing import List, Optional
from uuid import uuid4

import structlog

from app.database import database, utcnow

logger = structlog.get_logger(__name__)


class ActivityLogService:
    """Service for activity logging operations"""

    @staticmethod
    async def log_activity(
        actor_id: Optional[str],
        action: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None,
        ip_address: Optional[str] = None
    ) -> dict:
        """
        Log an activity

        Args:
            actor_id: User who performed the action
            action: Action type (e.g., 'record_attendance', 'approve_makeup')
            resource_type: Type of resource affected (e.g., 'attendance', 'makeup_request')
            resource_id: ID of the resource
            details: Additional JSON details
            ip_address: IP address of the request

        Returns:
            Created activity log entry
        """
        result = await database.fetch_one(
            """
            INSERT INTO activity_logs (id, actor_id, action, resource_type, resource_id, details, ip_address, created_at)
            VALUES (:id, :actor_id, :action, :resource_type, :resource_id, :details, :ip_address, :created_at)
            RETURNING *
            """,
            {
                "id": str(uuid4()),
                "actor_id": str(actor_id) if actor_id else None,
                "action": action,
                "resource_type": resource_type,
                "resource_id": str(resource_id) if resource_id else None,
                "details": json.dumps(details, default=str) if details else None,
                "ip_address": ip_address,
                "created_at": utcnow(),
            }
        )

        return dict(result) if result else None

    @staticmethod
    async def record(actor_id: Optional[str], action: str, **kwargs) -> None:
        """Log an activity without letting an audit failure fail the request"""
        try:
            await ActivityLogService.log_activity(actor_id, action, **kwargs)
        except Exception as e:
            logger.warning("activity_log_failed", action=action, error=str(e))

    @staticmethod
    async def get_activity_logs(
        limit: int = 50,
        offset: int = 0,
        action_filter: Optional[str] = None,
        actor_id: Optional[str] = None,
        days: int = 30
    ) -> tuple[List[dict], int]:
        """
        Get recent activity logs

        Returns:
            Tuple of (activity logs list, total count)
        """
        since = utcnow() - timedelta(days=days)

        where_clause = "created_at >= :since"
        params = {"since": since}

        if action_filter:
            where_clause += " AND action = :action"
            params["action"] = action_filter
        if actor_id:
            where_clause += " AND actor_id = :actor_id"
            params["actor_id"] = str(actor_id)

        count_query = f"SELECT COUNT(*) as count FROM activity_logs WHERE {where_clause}"
        count_result = await database.fetch_one(count_query, params)
        total = count_result["count"] if count_result else 0

        query = f"""
        SELECT
            id, actor_id, action, resource_type, resource_id,
            details, ip_address, created_at
        FROM activity_logs
        WHERE {where_clause}
        ORDER BY created_at DESC
        LIMIT :limit OFFSET :offset
        """

        params["limit"] = limit
        params["offset"] = offset

        logs = await database.fetch_all(query, params)

        return [dict(log) for log in logs], total
