from .base import WithTimestamps
from .id import CourseID, UserID


class Course(WithTimestamps):
    course_id: CourseID
    title: str
    instructor_id: UserID
