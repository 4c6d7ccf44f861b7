from devcamper.models.bootcamp import Bootcamp
from devcamper.models.course import Course
from devcamper.models.review import Review
from devcamper.models.user import User

__all__ = ["Bootcamp", "Course", "Review", "User"]
