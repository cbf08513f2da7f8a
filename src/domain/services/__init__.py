"""Domain services for the level queue.

Domain services contain business logic that doesn't naturally fit in
models. They must NOT depend on infrastructure.

Available services:
- level_code_codec: Extracts and validates level/maker codes
"""

from src.domain.services.level_code_codec import (
    CodeValidation,
    CourseIdFields,
    course_id_validity,
    decode_course_id,
    validate,
)

__all__: list[str] = [
    "CodeValidation",
    "CourseIdFields",
    "course_id_validity",
    "decode_course_id",
    "validate",
]
