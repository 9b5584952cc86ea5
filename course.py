"""
Course catalog — the fixed 30-lesson Arduino course.

Lesson content itself is served as static files by the frontend; this module
only knows lesson identifiers, the thematic categories and the learning path.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

COURSE_TITLE = "30-Day Arduino Beginner Course"
COURSE_DESCRIPTION = (
    "Learn electronics and microcontroller programming through hands-on lessons "
    "with Arduino Uno, ESP32, and common sensors/actuators."
)
TOTAL_LESSONS = 30
LESSON_ID_PATTERN = re.compile(r"^day\d{2}$")
INVALID_LESSON_ID_MESSAGE = "Invalid lesson ID format. Expected format: dayXX (e.g., day01)"


class CourseConfigError(ValueError):
    """Raised when the category ranges do not partition the course."""


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    description: str
    first: int  # inclusive lesson number
    last: int  # inclusive lesson number
    color: str = ""

    @property
    def total(self) -> int:
        return self.last - self.first + 1

    def contains(self, lesson_number: int) -> bool:
        return self.first <= lesson_number <= self.last

    def lesson_ids(self) -> list[str]:
        return [lesson_id_for(n) for n in range(self.first, self.last + 1)]


@dataclass(frozen=True)
class Milestone:
    name: str
    completed_after: str
    description: str


CATEGORIES: tuple[Category, ...] = (
    Category("foundation", "Foundation",
             "Breadboard, safety, LEDs, buttons, PWM, sensors", 1, 5, "#3B82F6"),
    Category("environmental-sensors", "Environmental Sensors",
             "DHT, PIR, flame, ultrasonic sensors", 6, 9, "#10B981"),
    Category("displays-motors", "Displays and Motors",
             "7-segment, LCD, servo, DC motor, stepper", 10, 14, "#F59E0B"),
    Category("advanced-sensors", "Advanced Sensors",
             "Accelerometer, EEPROM, RTC, water level, IR", 15, 21, "#8B5CF6"),
    Category("networking-esp32", "Networking and ESP32",
             "Wi-Fi, web servers, MQTT, advanced communication", 22, 28, "#EF4444"),
    Category("capstone", "Reliability and Capstone",
             "System reliability and final project", 29, 30, "#06B6D4"),
)

LEARNING_PATH: tuple[Milestone, ...] = (
    Milestone("Getting Started", "day05",
              "You understand basic circuit building, safety, and can control LEDs and read button inputs."),
    Milestone("Sensor Integration", "day09",
              "You can integrate environmental sensors to read temperature, motion, and distance."),
    Milestone("Output Devices", "day14",
              "You can control displays and motors for interactive projects."),
    Milestone("Advanced Concepts", "day21",
              "You understand data persistence, timing, and can work with complex sensors."),
    Milestone("IoT Ready", "day28",
              "You can build connected devices that talk to the network and each other."),
    Milestone("Course Complete", "day30",
              "You can design, build, and harden a complete Arduino project on your own."),
)


def lesson_id_for(number: int) -> str:
    return f"day{number:02d}"


def lesson_ids() -> list[str]:
    return [lesson_id_for(n) for n in range(1, TOTAL_LESSONS + 1)]


def lesson_number(lesson_id: str) -> int:
    """Numeric suffix of a ``dayNN`` id. Raises ValueError on a malformed id."""
    if not LESSON_ID_PATTERN.match(lesson_id or ""):
        raise ValueError(INVALID_LESSON_ID_MESSAGE)
    return int(lesson_id[3:])


def is_valid_lesson_id(lesson_id: str) -> bool:
    """True for ``day01`` … ``day30``."""
    try:
        return 1 <= lesson_number(lesson_id) <= TOTAL_LESSONS
    except ValueError:
        return False


def category_for(number: int, categories: tuple[Category, ...] = CATEGORIES) -> Category | None:
    """First category whose range holds the lesson number."""
    for category in categories:
        if category.contains(number):
            return category
    return None


def validate_categories(categories: tuple[Category, ...] = CATEGORIES,
                        total_lessons: int = TOTAL_LESSONS) -> None:
    """Check that the category ranges cover 1..total_lessons exactly once."""
    owners: dict[int, str] = {}
    for category in categories:
        if category.first > category.last:
            raise CourseConfigError(
                f"Category {category.name!r} has an empty range {category.first}-{category.last}"
            )
        for n in range(category.first, category.last + 1):
            if n < 1 or n > total_lessons:
                raise CourseConfigError(
                    f"Category {category.name!r} includes lesson {n} outside 1-{total_lessons}"
                )
            if n in owners:
                raise CourseConfigError(
                    f"Lesson {n} is in both {owners[n]!r} and {category.name!r}"
                )
            owners[n] = category.name
    missing = [n for n in range(1, total_lessons + 1) if n not in owners]
    if missing:
        raise CourseConfigError(f"Lessons without a category: {missing}")


def course_structure() -> dict:
    """JSON-ready description of the course."""
    return {
        "title": COURSE_TITLE,
        "description": COURSE_DESCRIPTION,
        "totalLessons": TOTAL_LESSONS,
        "lessonsRange": f"{lesson_id_for(1)} to {lesson_id_for(TOTAL_LESSONS)}",
        "categories": [
            {
                "id": c.id,
                "name": c.name,
                "description": c.description,
                "lessons": c.lesson_ids(),
                "color": c.color,
            }
            for c in CATEGORIES
        ],
        "learningPath": [
            {
                "milestone": m.name,
                "completedAfter": m.completed_after,
                "description": m.description,
            }
            for m in LEARNING_PATH
        ],
    }


def lesson_metadata(lesson_id: str) -> dict:
    """Metadata for a single lesson; the body lives in the frontend's static files."""
    number = lesson_number(lesson_id)
    category = category_for(number)
    return {
        "lessonId": lesson_id,
        "number": number,
        "category": category.name if category else None,
        "path": f"frontend/src/data/lessons/{lesson_id}.json",
    }
