ROLE_TYPE = {
    "SUPER_ADMIN": "superadmin",
    "SCHOOL_ADMIN": "schooladmin",
    "TEACHER": "teacher",
    "STUDENT": "student",
    "PARENT": "parent",
}

MESSAGE_KIND = {
    "TEXT": "text",
    "AI_QUERY": "ai-query",
}

CONVERSATION_TYPE = {
    "TEACHER_STUDENT": "teacher_student",
    "TEACHER_PARENT": "teacher_parent",
}

# Q/A records keep the legacy "Q: <question>\n\nA: <answer>" content layout
QUESTION_PREFIX = "Q: "
ANSWER_SEPARATOR = "\n\nA: "
LEGACY_QUESTION_PLACEHOLDER = "Previous question"

DEFAULT_GRADE_LEVEL = "your grade"
DEFAULT_STUDENT_NAME = "Student"

# Direct messaging
MESSAGE_CONTENT_REQUIRED = "Message content is required"
MISSING_REQUIRED_FIELDS = "Missing required fields"
USER_NOT_FOUND = "User not found"
SCHOOL_MISMATCH = "School mismatch"
CANNOT_MESSAGE_SELF = "You cannot send a message to yourself"
INVALID_RELATED_STUDENT = "Related student not found in this school"
FAILED_TO_SEND_MESSAGE = "Failed to send message"
CONTACTS_FAILED = "Failed to load contacts"

# Tutoring
ASK_A_QUESTION = "Please ask a question to learn"
TUTOR_STUDENTS_ONLY = "AI learning is only available for students"
TUTOR_BUSY = "Our AI tutor is busy. Please try again in a moment."
LEARNING_HISTORY_FAILED = "Failed to load learning history"
AI_HISTORY_CLEARED = "AI conversation history cleared successfully"
STUDENT_NOT_FOUND = "Student not found"
NOT_A_STUDENT = "Access denied. Students only."

# Relay
INVALID_JSON = "Invalid JSON format"
UNKNOWN_EVENT = "Unknown event"
INVALID_ID = "Invalid ID format"
INTERNAL_SERVER_ERROR = "Internal server error."
