"""Application constants.

Contains the versioned required-document configurations, the HR seed
document keywords and the storage filters used by the folder lister.
"""

# ---------------------------------------------------------------------------
# Required-document configurations
# Each version maps a document key to its display name and the keyword
# variants matched (case-insensitively, as substrings) against file names.
# A candidate is frozen to the version active when it was created.
# ---------------------------------------------------------------------------
DOCUMENT_CONFIG_VERSIONS: dict[str, dict[str, dict[str, object]]] = {
    "v1": {
        "aadhaar": {
            "display_name": "Aadhaar Card",
            "keywords": ["aadhaar", "adhar", "uid"],
        },
        "pan": {
            "display_name": "PAN Card",
            "keywords": ["pan", "pancard"],
        },
        "education": {
            "display_name": "Education Certificate",
            "keywords": ["education", "degree", "certificate"],
        },
    },
    "v2": {
        "aadhaar": {
            "display_name": "Aadhaar Card",
            "keywords": ["aadhaar", "adhar", "uid"],
        },
        "pan": {
            "display_name": "PAN Card",
            "keywords": ["pan", "pancard"],
        },
        "education": {
            "display_name": "Education Certificate",
            "keywords": [
                "education", "degree", "certificate", "mark",
                "10th", "12th", "btech",
            ],
        },
        "photo": {
            "display_name": "Passport Photo",
            "keywords": ["photo", "passport", "selfie"],
        },
        "passbook": {
            "display_name": "Bank Passbook",
            "keywords": ["passbook", "bank", "cheque", "statement"],
        },
    },
}

# ---------------------------------------------------------------------------
# HR seed document
# Dropped into the candidate folder by the HR operator; its presence moves
# the candidate from "Awaiting HR Document" to "Documents Pending".
# ---------------------------------------------------------------------------
SEED_DOCUMENT_KEY: str = "hr_offer_letter"
SEED_DOCUMENT_CONFIG: dict[str, dict[str, object]] = {
    SEED_DOCUMENT_KEY: {
        "display_name": "HR Offer Letter",
        "keywords": ["offer_letter", "offerletter", "offer-letter", "appointment"],
    },
}

# ---------------------------------------------------------------------------
# Storage listing
# ---------------------------------------------------------------------------
ALLOWED_DOCUMENT_EXTENSIONS: tuple[str, ...] = (".pdf",)
FOLDER_PLACEHOLDER_NAME: str = ".keep"
FOLDER_PREFIX: str = "candidates"
LISTING_PAGE_SIZE: int = 100

# ---------------------------------------------------------------------------
# Reminder row labels (rendered into reminder payloads)
# ---------------------------------------------------------------------------
DOCUMENT_STATE_APPROVED: str = "Approved"
DOCUMENT_STATE_UPLOADED: str = "Uploaded"
DOCUMENT_STATE_MISSING: str = "Missing"
