import json
import os
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Iterator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a trailing Z"""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO string or an epoch-milliseconds number, None when unusable"""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, OverflowError, OSError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class DatabaseManager:
    """Manages file-based database operations for students and users"""

    def __init__(self, base_dir: str = "data"):
        self.base_dir = base_dir
        self.students_file = os.path.join(base_dir, "students.json")
        self.users_file = os.path.join(base_dir, "users.json")
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._ensure_directories()

    def _ensure_directories(self):
        """Ensure the data directory exists"""
        os.makedirs(self.base_dir, exist_ok=True)

    def get_file(self, name: str) -> str:
        """Get the path of a JSON file inside the data directory"""
        return os.path.join(self.base_dir, name)

    @contextmanager
    def locked(self, file_path: str) -> Iterator[None]:
        """Hold the lock of a single JSON file for a whole read-modify-write"""
        key = os.path.abspath(file_path)
        with self._locks_guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield

    def read_json(self, file_path: str) -> Optional[Any]:
        """Read JSON file safely"""
        try:
            if not os.path.exists(file_path):
                return None
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except Exception as e:
            print(f"❌ Error reading {file_path}: {e}")
            return None

    def write_json(self, file_path: str, data: Any):
        """Write JSON file safely"""
        try:
            os.makedirs(os.path.dirname(file_path) or ".", exist_ok=True)
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except Exception as e:
            print(f"❌ Error writing {file_path}: {e}")
            raise

    # ==================== COLLECTION FILES ====================

    def _read_collection(self, file_path: str, key: str) -> Dict[str, Any]:
        """Read a {key: [...], lastUpdated} file, creating it empty on first use"""
        if not os.path.exists(file_path):
            self.write_json(file_path, {key: [], "lastUpdated": None})
        data = self.read_json(file_path)
        if not isinstance(data, dict):
            raise IOError(f"Could not read {file_path}")
        if not isinstance(data.get(key), list):
            data[key] = []
        return data

    def _write_collection(self, file_path: str, data: Dict[str, Any]):
        data["lastUpdated"] = to_iso(utc_now())
        self.write_json(file_path, data)

    # ==================== STUDENT OPERATIONS ====================

    @staticmethod
    def _next_student_id(students: List[Dict[str, Any]], when: datetime) -> str:
        """
        Student ids are YYMM followed by a 4-digit sequence.
        The sequence is per year-month bucket: highest existing + 1.
        """
        year_month = when.strftime("%y%m")
        max_sequence = 0
        for student in students:
            student_id = str(student.get("id") or "")
            if not student_id.startswith(year_month):
                continue
            try:
                sequence = int(student_id[4:])
            except ValueError:
                continue
            max_sequence = max(max_sequence, sequence)
        return f"{year_month}{max_sequence + 1:04d}"

    def get_students(self) -> List[Dict[str, Any]]:
        """Get all students, newest first"""
        with self.locked(self.students_file):
            return self._read_collection(self.students_file, "students")["students"]

    def get_student(self, student_id: str) -> Optional[Dict[str, Any]]:
        """Get a student by id"""
        for student in self.get_students():
            if student.get("id") == student_id:
                return student
        return None

    def create_student(self, fields: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
        """Create a student with a generated YYMM#### id, added to the front of the list"""
        now = now or utc_now()
        with self.locked(self.students_file):
            data = self._read_collection(self.students_file, "students")
            student_id = self._next_student_id(data["students"], now)
            timestamp = to_iso(now)

            student = {"id": student_id}
            student.update(fields)
            student["id"] = student_id
            student["createdAt"] = timestamp
            student["updatedAt"] = timestamp

            data["students"].insert(0, student)
            self._write_collection(self.students_file, data)
        return student

    def migrate_students(self, incoming: Any) -> Dict[str, int]:
        """
        Bulk import of student records from the old browser storage.

        Records whose email is already known are skipped. Each imported record
        gets an id from the month of its own `timestamp` (or now).
        """
        if not isinstance(incoming, list):
            raise ValueError("Students must be an array")

        migrated_count = 0
        with self.locked(self.students_file):
            data = self._read_collection(self.students_file, "students")
            students = data["students"]

            for record in incoming:
                if not isinstance(record, dict):
                    continue
                email = record.get("email")
                if any(s.get("email") == email for s in students):
                    continue

                created = parse_timestamp(record.get("timestamp"))
                student_id = self._next_student_id(students, created or utc_now())

                student = {"id": student_id}
                student.update(record)
                student["id"] = student_id
                student["createdAt"] = to_iso(created) if created else to_iso(utc_now())
                student["updatedAt"] = to_iso(utc_now())

                students.append(student)
                migrated_count += 1

            self._write_collection(self.students_file, data)

        print(f"✅ Migrated {migrated_count} students ({len(students)} total)")
        return {"migratedCount": migrated_count, "totalStudents": len(students)}

    def update_student(self, student_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update student data, the id never changes"""
        with self.locked(self.students_file):
            data = self._read_collection(self.students_file, "students")
            for index, student in enumerate(data["students"]):
                if student.get("id") != student_id:
                    continue
                student = {**student, **updates}
                student["id"] = student_id
                student["updatedAt"] = to_iso(utc_now())
                data["students"][index] = student
                self._write_collection(self.students_file, data)
                return student
        return None

    def delete_student(self, student_id: str) -> Optional[Dict[str, Any]]:
        """Remove a student and return the removed record"""
        with self.locked(self.students_file):
            data = self._read_collection(self.students_file, "students")
            for index, student in enumerate(data["students"]):
                if student.get("id") == student_id:
                    deleted = data["students"].pop(index)
                    self._write_collection(self.students_file, data)
                    return deleted
        return None

    def get_dashboard_stats(self) -> Dict[str, Any]:
        """
        Display figures for the admin dashboard.

        Only totalStudents and activeCourses are measured; the rest are
        fixed curves over the student count.
        """
        students = self.get_students()
        total = len(students)
        courses = {s.get("desiredCourse") for s in students if s.get("desiredCourse")}

        variance = min(total // 20, 7) if total > 0 else 0
        rating_boost = min(total / 1000, 0.3) if total > 0 else 0

        return {
            "totalStudents": total,
            "activeCourses": len(courses),
            "avgCompletion": min(68 + variance, 85),
            "courseRating": round(min(4.6 + rating_boost, 5.0), 1),
            "reviewCount": int(total * 0.27),
            "trendPercent": min(round(total / 100 * 12), 25) if total > 0 else 0,
        }

    # ==================== USER OPERATIONS ====================

    def get_users(self) -> List[Dict[str, Any]]:
        """Get all user accounts (including password fields)"""
        with self.locked(self.users_file):
            return self._read_collection(self.users_file, "users")["users"]

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Get user by email"""
        for user in self.get_users():
            if user.get("email") == email:
                return user
        return None

    def create_user(self, first_name: str, last_name: str, email: str, password_hash: str,
                    password_salt: Optional[str], verification_token: str) -> Optional[Dict[str, Any]]:
        """Create an unverified user, None when the email is already registered"""
        with self.locked(self.users_file):
            data = self._read_collection(self.users_file, "users")
            if any(u.get("email") == email for u in data["users"]):
                return None

            now = utc_now()
            user = {
                "id": str(int(now.timestamp() * 1000)),
                "firstName": first_name,
                "lastName": last_name,
                "email": email,
                "password": password_hash,
                "passwordSalt": password_salt,
                "verificationToken": verification_token,
                "isVerified": False,
                "createdAt": to_iso(now),
                "updatedAt": to_iso(now),
            }
            data["users"].append(user)
            self._write_collection(self.users_file, data)
        return user

    def verify_user(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Mark the account holding `token` as verified.

        Returns the account as it was found (so callers can tell an already
        verified account apart) or None when no account matches. The used
        token is kept as consumedVerificationToken so a repeated click on
        the same link still resolves to its account.
        """
        if not token:
            return None
        with self.locked(self.users_file):
            data = self._read_collection(self.users_file, "users")
            for user in data["users"]:
                if token not in (user.get("verificationToken"), user.get("consumedVerificationToken")):
                    continue
                found = dict(user)
                if user.get("isVerified"):
                    return found
                now = to_iso(utc_now())
                user["isVerified"] = True
                user["consumedVerificationToken"] = token
                user["verificationToken"] = None
                user["verifiedAt"] = now
                user["updatedAt"] = now
                self._write_collection(self.users_file, data)
                return found
        return None
