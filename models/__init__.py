from .role import Role
from .department import Department
from .user import User
from .admin_profile import AdminProfile
from .faculty import Faculty
from .student import Student
from .subjects import Subject
from .faculty_assignment import FacultyAssignment
from .enrollment import Enrollment
from .timetable import TimetableEntry
from .audit_log import AuditLog
__all__ = ["Role", "Department", "User", "AdminProfile", "Faculty", "Student", "Subject", "FacultyAssignment", "Enrollment", "TimetableEntry", "AuditLog"]
