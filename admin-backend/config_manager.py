import copy
import re
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from db_manager import DatabaseManager

# page id -> JSON file in the data directory
PAGE_FILES = {
    "pay": "config-pay.json",
    "pay1": "config-pay1.json",
    "pay2": "config-pay2.json",
    "online": "config-online.json",
    "ailearning": "config-ailearning.json",
    "offline": "config-offline.json",
    "hybrid": "config-hybrid.json",
}

# pages served by /api/payment-config
PAYMENT_PAGES = ("pay", "pay1", "pay2", "online")
SUBSCRIPTION_PAGES = ("online",)

HYBRID_IMAGE = "https://lh3.googleusercontent.com/aida-public/placeholder-course.png"

REQUIRED_BATCH_FIELDS = ("courseId", "faculty", "startTime", "endTime")


def slugify(name: str) -> str:
    """Lowercase, collapse every run of non-alphanumerics into one hyphen"""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _online_course(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "icon": fields.get("icon") or "school",
        "color": fields.get("color") or "blue",
        "price": fields.get("price") or 0,
        "duration": fields.get("duration") or "3 Months",
        "batchCount": fields.get("batchCount") or 1,
    }


def _offline_course(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "category": fields.get("category") or "General",
        "room": fields.get("room") or "TBD",
        "price": fields.get("price") or 0,
        "totalSeats": fields.get("totalSeats") or 30,
        "enrolledSeats": 0,
        "duration": fields.get("duration") or "3 Months",
        "instructor": fields.get("instructor") or "TBD",
    }


def _hybrid_course(fields: Dict[str, Any]) -> Dict[str, Any]:
    level = fields.get("level") or "Beginner"
    return {
        "instructor": fields.get("instructor") or "TBD",
        "level": level,
        "levelColor": "purple" if level == "Advanced" else "green",
        "startDate": fields.get("startDate") or "TBD",
        "onlinePercent": fields.get("onlinePercent") or 50,
        "offlinePercent": fields.get("offlinePercent") or 50,
        "fee": fields.get("fee") or 999,
        "image": HYBRID_IMAGE,
        "onlineSchedule": {
            "days": "TBD",
            "time": "TBD",
            "description": "Online Sessions",
            "platform": "Zoom",
            "platformNote": "Recordings available",
        },
        "offlineSchedule": {
            "days": "TBD",
            "time": "TBD",
            "description": "Lab Sessions",
            "location": "TBD",
            "locationNote": "Main Campus",
        },
    }


def _ailearning_course(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "category": fields.get("category") or "General",
        "description": fields.get("description") or "",
        "price": fields.get("price") or 0,
        "duration": fields.get("duration") or "3 Months",
        "link": fields.get("link") or "",
    }


COURSE_DEFAULTS = {
    "online": _online_course,
    "offline": _offline_course,
    "hybrid": _hybrid_course,
    "ailearning": _ailearning_course,
}


class ConfigManager:
    """
    Page configuration documents, one JSON file per page.

    Every mutation reads the whole file, changes it in memory and writes it
    back while holding that file's lock. Config files are never created
    here: a missing file is a read failure.
    """

    def __init__(self, db: DatabaseManager):
        self.db = db

    def get_config_file(self, page_id: str) -> str:
        if page_id not in PAGE_FILES:
            raise ValueError(f"Unknown page id: {page_id}")
        return self.db.get_file(PAGE_FILES[page_id])

    def get(self, page_id: str) -> Optional[Dict[str, Any]]:
        """Get a page config, None when the file is missing or unreadable"""
        config = self.db.read_json(self.get_config_file(page_id))
        if not isinstance(config, dict):
            return None
        return config

    def get_all_payment_configs(self) -> Dict[str, Optional[Dict[str, Any]]]:
        return {page_id: self.get(page_id) for page_id in PAYMENT_PAGES}

    def _load(self, page_id: str) -> Dict[str, Any]:
        config = self.get(page_id)
        if config is None:
            raise IOError(f"Failed to read configuration for {page_id}")
        return config

    def _save(self, page_id: str, config: Dict[str, Any]):
        self.db.write_json(self.get_config_file(page_id), config)

    # ==================== DOCUMENT FIELDS ====================

    def put(self, page_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Merge top-level fields into a page config"""
        with self.db.locked(self.get_config_file(page_id)):
            config = self._load(page_id)
            config.update(fields)
            self._save(page_id, config)
        return config

    def put_section(self, page_id: str, section: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Merge fields into a named sub-object such as accessFee or stats"""
        with self.db.locked(self.get_config_file(page_id)):
            config = self._load(page_id)
            target = config.get(section)
            if not isinstance(target, dict):
                target = config[section] = {}
            target.update(fields)
            self._save(page_id, config)
        return target

    # ==================== COURSES ====================

    @staticmethod
    def _courses(config: Dict[str, Any]) -> List[Dict[str, Any]]:
        courses = config.get("courses")
        if not isinstance(courses, list):
            courses = config["courses"] = []
        return courses

    def put_course(self, page_id: str, course_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update one course in place, None when the id is unknown"""
        fields = {k: v for k, v in fields.items() if k != "id"}
        with self.db.locked(self.get_config_file(page_id)):
            config = self._load(page_id)
            for course in self._courses(config):
                if course.get("id") == course_id:
                    course.update(fields)
                    self._save(page_id, config)
                    return course
        return None

    def post_course(self, page_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Append a course whose id is the slug of its name.

        Ids are not checked for collisions: two names that slug the same
        produce two courses with the same id.
        """
        name = fields.get("name")
        if not name or not isinstance(name, str):
            raise ValueError("Course name is required")

        course_id = slugify(name)
        if not course_id:
            raise ValueError("Course name must contain letters or digits")

        course = {"id": course_id, "name": name}
        course.update(COURSE_DEFAULTS[page_id](fields))

        with self.db.locked(self.get_config_file(page_id)):
            config = self._load(page_id)
            self._courses(config).append(course)
            self._save(page_id, config)
        return course

    def delete_course(self, page_id: str, course_id: str) -> Optional[Dict[str, Any]]:
        """Remove a course together with the batches scheduled for it"""
        with self.db.locked(self.get_config_file(page_id)):
            config = self._load(page_id)
            courses = self._courses(config)
            for index, course in enumerate(courses):
                if course.get("id") != course_id:
                    continue
                deleted = courses.pop(index)
                batches = config.get("batches")
                if isinstance(batches, list):
                    config["batches"] = [b for b in batches if b.get("courseId") != course_id]
                self._save(page_id, config)
                return deleted
        return None

    # ==================== BATCHES ====================

    def put_batches(self, page_id: str, batches: Any) -> List[Dict[str, Any]]:
        """Replace the whole batch list"""
        if not isinstance(batches, list):
            raise ValueError("Batches must be an array")
        with self.db.locked(self.get_config_file(page_id)):
            config = self._load(page_id)
            config["batches"] = copy.deepcopy(batches)
            self._save(page_id, config)
        return config["batches"]

    def post_batch(self, page_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Append one batch for an existing course"""
        missing = [name for name in REQUIRED_BATCH_FIELDS if not fields.get(name)]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

        with self.db.locked(self.get_config_file(page_id)):
            config = self._load(page_id)
            if not any(c.get("id") == fields["courseId"] for c in self._courses(config)):
                raise ValueError(f"Course '{fields['courseId']}' not found")

            batches = config.get("batches")
            if not isinstance(batches, list):
                batches = config["batches"] = []

            stamp = int(datetime.now(timezone.utc).timestamp() * 1000)
            taken = {b.get("id") for b in batches if isinstance(b, dict)}
            while f"batch-{stamp}" in taken:
                stamp += 1

            batch = {"id": f"batch-{stamp}"}
            batch.update({k: v for k, v in fields.items() if k != "id"})
            batches.append(batch)
            self._save(page_id, config)
        return batch
