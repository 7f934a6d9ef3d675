"""Errors raised by question resolution and question bank ingestion."""


class InvalidInputError(Exception):
    """Raised when a required identifier is missing or an upload has no usable questions."""

    pass


class PartialIngestFailure(Exception):
    """
    Raised when a replace-all upload failed after the existing bank was deleted.

    `bank_restored` tells whether the previous questions are still in place
    (the store rolled the delete back) or the bank is now empty. It is None when
    the commit itself failed and the stored state is unknown.
    """

    def __init__(self, paper_id: str, subject_id: str, deleted_count: int, bank_restored: bool | None, reason: str):
        self.paper_id = paper_id
        self.subject_id = subject_id
        self.deleted_count = deleted_count
        self.bank_restored = bank_restored
        self.reason = reason
        if bank_restored is None:
            state = "commit outcome unknown, verify the question bank"
        elif bank_restored:
            state = "previous questions restored"
        else:
            state = "question bank left EMPTY"
        super().__init__(
            f"Replacing questions for paper {paper_id}, subject {subject_id} failed after deleting "
            f"{deleted_count} questions ({state}): {reason}"
        )
