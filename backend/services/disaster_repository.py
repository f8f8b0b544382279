"""
Disaster Repository
Data access for disasters and their linked resources in Firebase
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


class DisasterRepository:
    """Reads and writes disaster records under the 'disasters' node"""

    DISASTERS_PATH = 'disasters'
    RESOURCES_PATH = 'resources'

    def __init__(self, db=None):
        """
        Args:
            db: Module or object exposing reference(path); defaults to firebase_admin.db
        """
        if db is None:
            from firebase_admin import db as firebase_db
            db = firebase_db
        self.db = db

    def find_disaster_by_id(self, disaster_id) -> Optional[Dict]:
        """
        Look up one disaster

        Args:
            disaster_id (str): Firebase key of the disaster

        Returns:
            dict with the stored fields plus 'id', or None if missing
        """
        if not disaster_id:
            return None

        record = self.db.reference(f'{self.DISASTERS_PATH}/{disaster_id}').get()
        if not record:
            return None

        return {**record, 'id': disaster_id}

    def list_disasters(self, tag=None) -> List[Dict]:
        """
        List disasters, optionally only those carrying a tag

        Args:
            tag (str): Exact tag to filter on

        Returns:
            list: Disaster dicts, newest first
        """
        records = self.db.reference(self.DISASTERS_PATH).get() or {}

        disasters = []
        for disaster_id, record in records.items():
            if not isinstance(record, dict):
                continue
            if tag and tag not in (record.get('tags') or []):
                continue
            disasters.append({**record, 'id': disaster_id})

        disasters.sort(key=lambda d: d.get('created_at', ''), reverse=True)
        return disasters

    def create_disaster(self, disaster: Dict) -> Dict:
        """
        Store a new disaster

        Args:
            disaster (dict): Validated disaster fields

        Returns:
            dict: Stored disaster including generated 'id' and 'created_at'
        """
        record = {
            **disaster,
            'created_at': datetime.now(timezone.utc).isoformat(),
            'audit_trail': [],
        }
        ref = self.db.reference(self.DISASTERS_PATH).push(record)
        logger.info(f"Disaster stored: {ref.key}")
        return {**record, 'id': ref.key}

    def update_disaster(self, disaster_id, changes: Dict, user_id) -> Optional[Dict]:
        """
        Update a disaster and append an audit-trail entry

        Args:
            disaster_id (str): Disaster key
            changes (dict): Fields to overwrite (None values are ignored)
            user_id (str): Acting user, recorded in the audit trail

        Returns:
            dict: Updated disaster, or None if it does not exist
        """
        existing = self.find_disaster_by_id(disaster_id)
        if existing is None:
            return None

        audit_trail = list(existing.get('audit_trail') or [])
        audit_trail.append({
            'action': 'update',
            'user_id': user_id,
            'timestamp': datetime.now(timezone.utc).isoformat()
        })

        updates = {key: value for key, value in changes.items() if value is not None}
        updates['audit_trail'] = audit_trail

        self.db.reference(f'{self.DISASTERS_PATH}/{disaster_id}').update(updates)
        existing.update(updates)
        return existing

    def update_coordinates(self, disaster_id, lat: float, lng: float) -> Optional[Dict]:
        """Set a disaster's coordinates; None if it does not exist"""
        existing = self.find_disaster_by_id(disaster_id)
        if existing is None:
            return None

        self.db.reference(f'{self.DISASTERS_PATH}/{disaster_id}').update({'lat': lat, 'lng': lng})
        existing.update({'lat': lat, 'lng': lng})
        return existing

    def delete_disaster(self, disaster_id) -> bool:
        """Delete a disaster; False if it did not exist"""
        if self.find_disaster_by_id(disaster_id) is None:
            return False

        self.db.reference(f'{self.DISASTERS_PATH}/{disaster_id}').delete()
        logger.info(f"Disaster deleted: {disaster_id}")
        return True

    def list_resources(self, disaster_id) -> List[Dict]:
        """Resources (shelters, hospitals, ...) linked to a disaster"""
        records = (
            self.db.reference(self.RESOURCES_PATH)
            .order_by_child('disaster_id')
            .equal_to(disaster_id)
            .get()
        ) or {}

        return [
            {**record, 'id': resource_id}
            for resource_id, record in records.items()
            if isinstance(record, dict)
        ]
