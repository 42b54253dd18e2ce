from .mailbox import (
    Attachment,
    EmlDirectoryMailbox,
    MailboxError,
    MailMessage,
    MailThread,
    spreadsheet_attachments,
)

__all__ = [
    "Attachment",
    "EmlDirectoryMailbox",
    "MailMessage",
    "MailThread",
    "MailboxError",
    "spreadsheet_attachments",
]
