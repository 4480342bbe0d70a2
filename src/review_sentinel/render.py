from typing import List, Sequence

from review_sentinel.review import ApprovalState, FileUnderReview


# Header for the comment so it can be found again
COMMENT_HEADER = "<!-- codeowners comment header -->"

STATUS_HEADING = "**Review status**"

NO_FILES = "There are no files in the PR yet."
ALL_APPROVED = "All files in the PR are approved."
UNAPPROVABLE_TITLE = "These files can not be approved by the current reviewers:"
PENDING_TITLE = "These files are waiting for approval:"
RESOLVED_SUMMARY = "Approved files"
NO_OWNERS = "File has no owners, no approval required"

CHECK = "&check;"
CROSS = "&cross;"

# GFM hard line break
LINE_BREAK = "\\\n"


def owners_string(file: FileUnderReview) -> str:
    """
    A ', ' separated list of the file's owners. Owners that have approved are
    marked in bold.
    """
    owners = []
    for owner in file.owners:
        if owner in file.approvers:
            owners.append(f"**{owner}**")
        else:
            owners.append(owner)
    return ", ".join(owners)


def file_line(file: FileUnderReview) -> str:
    if file.approval == ApprovalState.NoOwners:
        return f"{CHECK} `{file.path}`: {NO_OWNERS}"
    if file.approval == ApprovalState.Approved:
        return f"{CHECK} `{file.path}`: {owners_string(file)}"
    return f"{CROSS} `{file.path}`: {owners_string(file)}"


def create_comment_content(files: Sequence[FileUnderReview]) -> str:
    """
    Create the GFM review status comment.

    The comment starts with :data:`COMMENT_HEADER` so later runs can update it
    instead of adding another one. Files that can not be approved by the
    current reviewers come first, then files waiting for approval, e.g.

        &cross; `one/more/file`: foo, **bar**

    Files that are approved or have no owners are listed in a ``<details>``
    block so they are hidden by default.
    """
    header = f"{COMMENT_HEADER}\n{STATUS_HEADING}\n\n"

    if len(files) == 0:
        return header + NO_FILES

    unapprovable = [f for f in files if f.approval == ApprovalState.Unapprovable]
    pending = [f for f in files if f.approval == ApprovalState.Pending]
    resolved = [f for f in files if not f.needs_approval]

    if len(resolved) == len(files):
        return header + ALL_APPROVED

    sections: List[str] = []

    if len(unapprovable) > 0:
        sections.append(
            f"{UNAPPROVABLE_TITLE}\n\n"
            + LINE_BREAK.join(file_line(f) for f in unapprovable)
        )

    if len(pending) > 0:
        sections.append(
            f"{PENDING_TITLE}\n\n" + LINE_BREAK.join(file_line(f) for f in pending)
        )

    if len(resolved) > 0:
        sections.append(
            "<details>\n"
            f"<summary>{RESOLVED_SUMMARY}</summary>\n\n"
            + LINE_BREAK.join(file_line(f) for f in resolved)
            + "\n\n</details>"
        )

    return header + "\n\n".join(sections) + "\n"
