"""Utility for generating Excel template files for question uploads."""

import io

import pandas as pd


def generate_question_template() -> bytes:
    """
    Generate Excel template for question bank upload.

    Returns:
        Bytes of Excel file
    """
    data = {
        "Sr.No": [1, 2],
        "Paper Id": ["P1234", "P1234"],
        "Question": ["What is the capital of France?", "Who invented the telephone?"],
        "Option A": ["London", "Thomas Edison"],
        "Option B": ["Paris", "Alexander Graham Bell"],
        "Option C": ["Berlin", "Nikola Tesla"],
        "Option D": ["Madrid", "Albert Einstein"],
        "Correct Option": ["B", "B"],
    }
    df = pd.DataFrame(data)

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Questions")
    output.seek(0)
    return output.getvalue()
