"""Legal hold notice and reminder text.

Templates are keyed by matter type; unknown matter types fall back to the
default template.
"""

from ediscovery_custody.core.models import HoldCustodian, LegalHold

_NOTICE_TEMPLATES: dict[str, str] = {
    "litigation": (
        "LEGAL HOLD NOTICE {hold_number}\n\n"
        "DATE: {issued_date}\n"
        "TO: {custodian_name} <{custodian_email}>\n"
        "FROM: {issued_by}, {issuing_firm}\n"
        "RE: {hold_name} (Case {case_number})\n\n"
        "IMMEDIATE ACTION REQUIRED\n\n"
        "You must preserve all documents and electronically stored information "
        "in your possession, custody or control that relate to the following scope:\n\n"
        "{scope}\n\n"
        "DATA SOURCES COVERED:\n"
        "{data_sources_list}\n\n"
        "{instructions}"
        "Do not delete, modify or move any potentially relevant material. This hold "
        "overrides routine retention and deletion schedules until you are notified "
        "in writing that it has been released.\n\n"
        "Please acknowledge this notice within 5 business days.\n"
    ),
    "government_investigation": (
        "LEGAL HOLD NOTICE {hold_number} - GOVERNMENT INVESTIGATION\n\n"
        "DATE: {issued_date}\n"
        "CONFIDENTIAL - ATTORNEY-CLIENT PRIVILEGED\n\n"
        "TO: {custodian_name} <{custodian_email}>\n"
        "FROM: {issued_by}, {issuing_firm}\n"
        "RE: Preservation Notice - {hold_name}\n\n"
        "In connection with a government investigation you must immediately "
        "preserve all documents and electronically stored information within this scope:\n\n"
        "{scope}\n\n"
        "DATA SOURCES COVERED:\n"
        "{data_sources_list}\n\n"
        "{instructions}"
        "Do not discuss this notice or its subject matter with anyone outside the "
        "company or its counsel.\n\n"
        "Please acknowledge this notice within 2 business days.\n"
    ),
    "default": (
        "LEGAL HOLD NOTICE {hold_number}\n\n"
        "DATE: {issued_date}\n"
        "TO: {custodian_name} <{custodian_email}>\n"
        "FROM: {issued_by}\n"
        "RE: {hold_name} - Document Preservation\n\n"
        "You must preserve all documents within this scope:\n\n"
        "{scope}\n\n"
        "Data sources covered: {data_sources_list}\n\n"
        "{instructions}"
        "Please acknowledge this notice within 5 business days.\n"
    ),
}


class HoldNoticeRenderer:
    """Renders custodian-facing hold notices and reminders.

    Args:
        issuing_firm: Firm named as the issuer on every notice.
    """

    def __init__(self, issuing_firm: str) -> None:
        self._issuing_firm = issuing_firm

    def render_notice(self, hold: LegalHold, custodian: HoldCustodian) -> str:
        template = _NOTICE_TEMPLATES.get(hold.matter_type, _NOTICE_TEMPLATES["default"])
        data_sources_list = (
            "\n".join(f"  - {source}" for source in hold.data_sources) if hold.data_sources else "  - All sources"
        )
        instructions = (
            f"PRESERVATION INSTRUCTIONS:\n{hold.preservation_instructions}\n\n"
            if hold.preservation_instructions
            else ""
        )
        return template.format(
            hold_number=hold.hold_number,
            issued_date=hold.issued_at.strftime("%B %d, %Y"),
            custodian_name=custodian.name,
            custodian_email=custodian.email,
            issued_by=hold.created_by,
            issuing_firm=self._issuing_firm,
            hold_name=hold.hold_name,
            case_number=hold.case_number or "N/A",
            scope=hold.scope,
            data_sources_list=data_sources_list,
            instructions=instructions,
        )

    def render_reminder(self, hold: LegalHold, custodian: HoldCustodian) -> str:
        sent = custodian.last_reminder_at or hold.issued_at
        return (
            f"REMINDER #{custodian.reminders_sent} - LEGAL HOLD NOTICE {hold.hold_number}\n\n"
            f"Date: {sent.strftime('%B %d, %Y')}\n"
            f"To: {custodian.name} <{custodian.email}>\n"
            f"Re: {hold.hold_name} - Acknowledgement Outstanding\n\n"
            f"Our records show you have not acknowledged the legal hold notice issued on "
            f"{hold.issued_at.strftime('%B %d, %Y')}.\n\n"
            f"Please acknowledge immediately. Unacknowledged holds are reported to counsel.\n\n"
            f"Issued by: {hold.created_by}, {self._issuing_firm}"
        )
