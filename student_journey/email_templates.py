"""Outreach email drafts for different risk levels."""

import os
from typing import Dict, List, Optional

from student_journey.risk import get_risk_level

FACTOR_DESCRIPTIONS = {
    'gpa': 'your current GPA',
    'attendance': 'your class attendance',
    'support_tickets': 'the number of open support requests',
    'advisor_meetings': 'how often we have been able to meet',
    'credit_progress': 'your progress toward required credits',
}


def get_advisor_info() -> Dict[str, str]:
    """Get advisor name and email from environment or defaults."""
    return {
        'name': os.getenv('ADVISOR_NAME', 'Academic Advisor'),
        'email': os.getenv('ADVISOR_EMAIL', 'advisor@example.com')
    }


def describe_factors(factors: Optional[Dict[str, float]]) -> List[str]:
    """Readable descriptions of the factors that contributed risk, largest first."""
    if not factors:
        return []
    active = sorted(
        (name for name, value in factors.items() if value > 0),
        key=lambda name: -factors[name]
    )
    return [FACTOR_DESCRIPTIONS.get(name, name) for name in active]


def generate_email_draft(
    student_id: str,
    program: str,
    risk_score: float,
    gpa: float,
    attendance_rate: float,
    factors: Optional[Dict[str, float]] = None
) -> Dict[str, str]:
    """Generate an email draft tailored to the student's risk level."""
    advisor = get_advisor_info()
    gpa_str = f"{gpa:.2f}"
    attendance_str = f"{attendance_rate * 100:.1f}"
    reasons = describe_factors(factors)

    level = get_risk_level(risk_score)
    if level == 'Low':
        return _low_risk_email(student_id, program, gpa_str, attendance_str, advisor)
    if level == 'Medium':
        return _medium_risk_email(student_id, program, gpa_str, attendance_str, reasons, advisor)
    return _high_risk_email(student_id, program, gpa_str, attendance_str, reasons, advisor)


def _reason_lines(reasons: List[str]) -> str:
    return "\n".join(f"- {reason}" for reason in reasons)


def _low_risk_email(student_id: str, program: str, gpa: str, attendance: str, advisor: Dict[str, str]) -> Dict[str, str]:
    subject = f"Great Progress in {program}"
    body = f"""Hello,

Student ID: {student_id}

You're doing well in {program}, with a GPA of {gpa} and {attendance}% attendance.

Keep it up. If you'd like to talk about next-term planning or enrichment opportunities, my door is open.

{advisor['name']}
{advisor['email']}"""
    return {'subject': subject, 'body': body}


def _medium_risk_email(student_id: str, program: str, gpa: str, attendance: str, reasons: List[str], advisor: Dict[str, str]) -> Dict[str, str]:
    subject = f"Checking In on Your {program} Courses"
    body = f"""Hello,

Student ID: {student_id}

I wanted to check in on how your courses in {program} are going. Your GPA is {gpa} and your attendance is {attendance}%.

A few things I'd like to look at with you:
{_reason_lines(reasons)}

Could we set up a short meeting in the next two weeks? Small adjustments now tend to make a big difference by the end of term.

{advisor['name']}
{advisor['email']}"""
    return {'subject': subject, 'body': body}


def _high_risk_email(student_id: str, program: str, gpa: str, attendance: str, reasons: List[str], advisor: Dict[str, str]) -> Dict[str, str]:
    subject = f"Let's Meet About Your Progress in {program}"
    body = f"""Hello,

Student ID: {student_id}

I'm reaching out about your progress in {program}. Your GPA is {gpa} and your attendance is {attendance}%.

These areas in particular concern me:
{_reason_lines(reasons)}

Please reply to book a meeting this week. We can go over tutoring, scheduling and the support services available, and put together a plan to get you back on track.

{advisor['name']}
{advisor['email']}"""
    return {'subject': subject, 'body': body}
