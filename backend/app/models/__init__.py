from app.models.activity_log import ActivityLog  # noqa: F401
from app.models.class_offering import ClassOffering, ClassSchedule, class_students  # noqa: F401
from app.models.department import Department  # noqa: F401
from app.models.section import Section  # noqa: F401
from app.models.subject import Subject  # noqa: F401
from app.models.user import User, UserRole  # noqa: F401
