"""
People a user may start a direct message with.

Students reach their class teachers, teachers reach the students of the
classrooms they lead and those students' parents, parents reach the
class teachers of their children. Everything stays inside the user's
school.
"""
from typing import Any, Dict, List, Optional

from schoolhub.common.constants import ROLE_TYPE
from schoolhub.features.directory.repository import IdentityDirectory
from schoolhub.features.messaging.handler import derive_conversation_type


def grade_section(classroom: Dict[str, Any]) -> Optional[str]:
    parts = [str(part) for part in (classroom.get("grade"), classroom.get("section")) if part not in (None, "")]
    return "-".join(parts) or None


class ContactBook:

    def __init__(self, directory: IdentityDirectory):
        self.directory = directory

    async def contacts_for(self, user: Dict[str, Any]) -> List[Dict[str, Any]]:
        role = user.get("role")
        if role == ROLE_TYPE["STUDENT"]:
            contacts = await self._class_teachers(user, [(user, None)])
        elif role == ROLE_TYPE["PARENT"]:
            children = await self.directory.children_of(user)
            contacts = await self._class_teachers(user, [(child, child) for child in children])
        elif role == ROLE_TYPE["TEACHER"]:
            contacts = await self._students_and_parents(user)
        else:
            contacts = []
        return _unique(contacts)

    async def _class_teachers(self, user, students) -> List[Dict[str, Any]]:
        contacts = []
        for student, child in students:
            classrooms = await self.directory.student_classrooms(student)
            teachers = await self.directory.get_users(
                classroom["classTeacher"] for classroom in classrooms if classroom.get("classTeacher")
            )
            for classroom in classrooms:
                teacher = teachers.get(str(classroom.get("classTeacher")))
                if teacher is None:
                    continue
                contact = self._contact(user, teacher, classroom)
                contact.update({
                    "gradeSection": grade_section(classroom),
                    "subject": classroom.get("subject"),
                    "isClassTeacher": True,
                })
                if child is not None:
                    contact["studentName"] = child.get("name")
                    contact["studentId"] = str(child["_id"])
                contacts.append(contact)
        return contacts

    async def _students_and_parents(self, teacher) -> List[Dict[str, Any]]:
        contacts = []
        for classroom in await self.directory.teacher_classrooms(teacher):
            roster = await self.directory.get_users(classroom.get("students") or [])
            for student_id in classroom.get("students") or []:
                student = roster.get(str(student_id))
                if student is None:
                    continue
                contacts.append(self._contact(teacher, student, classroom))

                parent = await self.directory.parent_of(student)
                if parent is not None:
                    contact = self._contact(teacher, parent, classroom)
                    contact["name"] = parent.get("name") or f"Parent of {student.get('name')}"
                    contact["studentName"] = student.get("name")
                    contact["studentId"] = str(student["_id"])
                    contacts.append(contact)
        return contacts

    def _contact(self, user, other, classroom) -> Dict[str, Any]:
        return {
            "id": str(other["_id"]),
            "name": other.get("name"),
            "email": other.get("email"),
            "role": other.get("role"),
            "classroom": classroom.get("name"),
            "conversationType": derive_conversation_type(user.get("role"), other.get("role")),
        }


def _unique(contacts: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # first entry per person wins
    seen = set()
    unique = []
    for contact in contacts:
        if contact["id"] in seen:
            continue
        seen.add(contact["id"])
        unique.append(contact)
    return unique
