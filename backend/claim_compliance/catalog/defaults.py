"""Built-in rule catalog: CMS-style medical necessity, filing, frequency and payer rules."""

# ──────────────────────────────────────────────
# Medical necessity
# ──────────────────────────────────────────────
HIGH_RISK_COMBINATIONS = [
    {"diagnosis_pattern": r"^Z51\.[01]", "procedure_codes": ["96413", "96415", "77301", "77338"],
     "requirement": "Oncology treatment plan and staging documentation", "documentation_type": "oncology_treatment_plan", "severity": "high"},
    {"diagnosis_pattern": r"^M79", "procedure_codes": ["20610", "20611", "76942"],
     "requirement": "Documentation of failed conservative treatment", "documentation_type": "conservative_treatment_history", "severity": "medium"},
    {"diagnosis_pattern": r"^S72", "procedure_codes": ["27245", "27246", "27248"],
     "requirement": "Imaging confirmation of fracture", "documentation_type": "imaging_report", "severity": "high"},
    {"diagnosis_pattern": r"^G93\.1", "procedure_codes": ["99291", "99292"],
     "requirement": "Critical care time and intervention documentation", "documentation_type": "critical_care_notes", "severity": "high"},
    {"diagnosis_pattern": r"^I25", "procedure_codes": ["93458", "93459", "93460"],
     "requirement": "Stress test or non-invasive cardiac evaluation results", "documentation_type": "cardiac_evaluation", "severity": "high"},
]

PRIOR_AUTH_REQUIRED = [
    "27447",  # Total knee arthroplasty
    "27130",  # Total hip arthroplasty
    "63047",  # Lumbar laminectomy
    "64483",  # Transforaminal epidural injection
    "93458",  # Cardiac catheterization
    "70553",  # MRI brain
    "72148",  # MRI lumbar spine
    "73721",  # MRI knee
    "97110",  # Therapeutic exercise
    "90834",  # Psychotherapy, 45 min
    "99213",  # Office visit, established
]

AGE_RESTRICTIONS = [
    {"procedure_code": "99401", "min_age": 18, "max_age": 64, "requirement": "Preventive counseling limited to adults 18-64"},
    {"procedure_code": "90715", "min_age": 7, "max_age": None, "requirement": "Tdap vaccine for ages 7 and older"},
    {"procedure_code": "77067", "min_age": 40, "max_age": None, "requirement": "Screening mammography for ages 40 and older"},
    {"procedure_code": "82270", "min_age": 50, "max_age": 75, "requirement": "Colorectal cancer screening for ages 50-75"},
]

GENDER_RESTRICTIONS = [
    {"procedure_codes": ["57454", "58150", "58180"], "required_gender": "F", "requirement": "Gynecological procedure"},
    {"procedure_codes": ["54150", "54160", "54161"], "required_gender": "M", "requirement": "Male-specific procedure"},
    {"procedure_codes": ["77067", "77063"], "required_gender": "F", "requirement": "Mammography screening"},
]

# ──────────────────────────────────────────────
# Payer resolution & timely filing
# ──────────────────────────────────────────────
PAYER_KEYWORDS = [
    {"payer_type": "Medicare", "keywords": ["medicare"]},
    {"payer_type": "Medicaid", "keywords": ["medicaid"]},
    {"payer_type": "TRICARE", "keywords": ["tricare", "champus"]},
    {"payer_type": "Workers_Compensation", "keywords": ["workers comp", "workers' comp", "workman's comp"]},
]

FILING_LIMITS = {
    "Medicare": {"limit_days": 365, "description": "12 months from date of service",
                 "exceptions": ["Retroactive entitlement", "Administrative error"]},
    "Medicaid": {"limit_days": 365, "description": "12 months from date of service (varies by state)",
                 "exceptions": ["Retroactive eligibility", "Third party liability"]},
    "Commercial": {"limit_days": 180, "description": "180 days from date of service (typical)",
                   "exceptions": ["Coordination of benefits", "Appeals"]},
    "TRICARE": {"limit_days": 365, "description": "1 year from date of service",
                "exceptions": ["Good cause"]},
    "Workers_Compensation": {"limit_days": 90, "description": "90 days from date of service (varies by state)",
                             "exceptions": ["Delayed injury reporting"]},
}

# ──────────────────────────────────────────────
# Frequency / quantity limits
# ──────────────────────────────────────────────
DAILY_LIMITS = [
    {"procedure_code": "90834", "max_per_day": 1, "description": "Psychotherapy, 45 minutes"},
    {"procedure_code": "97110", "max_per_day": 4, "description": "Therapeutic exercise, 15-minute units"},
    {"procedure_code": "99291", "max_per_day": 1, "description": "Critical care, first hour"},
]

ANNUAL_LIMITS = [
    {"procedure_code": "99213", "max_per_year": 12, "description": "Office visits, established patient"},
    {"procedure_code": "76700", "max_per_year": 2, "description": "Abdominal ultrasound"},
    {"procedure_code": "77067", "max_per_year": 1, "description": "Screening mammography"},
    {"procedure_code": "82270", "max_per_year": 1, "description": "Fecal occult blood test"},
]

LIFETIME_LIMITS = [
    {"procedure_code": "27447", "max_lifetime": 2, "description": "Total knee arthroplasty (bilateral)"},
    {"procedure_code": "27130", "max_lifetime": 2, "description": "Total hip arthroplasty (bilateral)"},
]

AGE_BASED_LIMITS = [
    {"procedure_code": "77067", "description": "Screening mammography by age",
     "age_ranges": [
         {"min_age": 40, "max_age": 49, "max_per_year": 1},
         {"min_age": 50, "max_age": 74, "max_per_year": 2},
         {"min_age": 75, "max_age": None, "max_per_year": 1},
     ]},
    {"procedure_code": "82270", "description": "Colorectal screening by age",
     "age_ranges": [
         {"min_age": 50, "max_age": 75, "max_per_year": 1},
     ]},
]

# ──────────────────────────────────────────────
# Provider enrollment
# ──────────────────────────────────────────────
ENROLLMENT_STATUSES = {
    "active": {"can_bill": True, "description": "Provider can bill for services"},
    "pending": {"can_bill": False, "description": "Enrollment pending approval"},
    "suspended": {"can_bill": False, "description": "Billing privileges suspended"},
    "terminated": {"can_bill": False, "description": "Enrollment terminated"},
    "deactivated": {"can_bill": False, "description": "Enrollment deactivated"},
}

# ──────────────────────────────────────────────
# Payer-specific requirements
# ──────────────────────────────────────────────
PAYER_REQUIREMENTS = {
    "Medicare": {
        "required_fields": ["NPI", "Place of Service", "Diagnosis Codes", "Patient Member ID"],
        "required_modifiers": [
            {"procedure_code": "99213", "modifier": "25", "reason": "Significant, separately identifiable E/M service"},
        ],
        "prohibited_modifiers": [
            {"procedure_code": "99213", "modifier": "59", "reason": "Distinct procedural service not applicable to E/M"},
        ],
    },
    "Medicaid": {
        "required_fields": ["NPI", "Medicaid Provider ID", "Authorization Number", "Patient Member ID"],
    },
    "Commercial": {
        "required_fields": ["NPI", "Patient Member ID", "Group Number"],
    },
    "TRICARE": {
        "required_fields": ["NPI", "Taxonomy Code", "Referring Provider"],
    },
    "Workers_Compensation": {
        "required_fields": ["NPI", "Authorization Number", "Place of Service"],
    },
}

# ──────────────────────────────────────────────
# Scoring & monitoring
# ──────────────────────────────────────────────
SCORING = {
    "risk_weights": {
        "medical_necessity": 0.20,
        "timely_filing": 0.20,
        "provider_enrollment": 0.20,
        "frequency_limits": 0.15,
        "payer_compliance": 0.15,
        "claim_completeness": 0.10,
    },
    "status_risk_points": {"pass": 0, "warning": 50, "review_required": 65, "failed": 100},
    "risk_thresholds": {"critical": 90, "high": 70, "medium": 40},
    "compliance_weights": {
        "medical_necessity": 0.25,
        "timely_filing": 0.20,
        "provider_enrollment": 0.15,
        "frequency_limits": 0.15,
        "payer_compliance": 0.15,
        "claim_completeness": 0.10,
    },
    "status_compliance_penalty": {"pass": 0, "warning": 20, "review_required": 50, "failed": 100},
}

MONITORING = {
    "compliance_levels": {"excellent": 95, "good": 85, "fair": 75, "poor": 60},
    # Thresholds apply to the shortfall of a metric (100 - rate, or the denial rate itself).
    "alert_severity": {
        "critical": {"threshold": 25, "color": "#dc2626"},
        "high": {"threshold": 15, "color": "#ea580c"},
        "medium": {"threshold": 10, "color": "#d97706"},
        "low": {"threshold": 5, "color": "#65a30d"},
    },
    "tracked_metrics": [
        {"metric": "overall_score", "title": "Overall compliance score"},
        {"metric": "validation_rate", "title": "Validation rate"},
        {"metric": "first_pass_rate", "title": "First-pass rate"},
        {"metric": "denial_rate", "title": "Denial rate", "higher_is_better": False},
        {"metric": "timely_filing_rate", "title": "Timely filing compliance"},
        {"metric": "provider_enrollment_rate", "title": "Provider enrollment compliance"},
        {"metric": "medical_necessity_rate", "title": "Medical necessity compliance"},
    ],
    "pattern_min_occurrences": 2,
    "pattern_change_ratio": 0.2,
}

DEFAULT_CATALOG = {
    "version": "2024.1",
    "medical_necessity": {
        "high_risk_combinations": HIGH_RISK_COMBINATIONS,
        "prior_auth_required": PRIOR_AUTH_REQUIRED,
        "age_restrictions": AGE_RESTRICTIONS,
        "gender_restrictions": GENDER_RESTRICTIONS,
    },
    "payer_keywords": PAYER_KEYWORDS,
    "default_payer_type": "Commercial",
    "timely_filing": {"warning_buffer_days": 30, "limits": FILING_LIMITS},
    "frequency_limits": {
        "daily_limits": DAILY_LIMITS,
        "annual_limits": ANNUAL_LIMITS,
        "lifetime_limits": LIFETIME_LIMITS,
        "age_based_limits": AGE_BASED_LIMITS,
    },
    "provider_enrollment": {"statuses": ENROLLMENT_STATUSES},
    "payer_requirements": PAYER_REQUIREMENTS,
    "claim_completeness": {
        "pass_threshold": 90,
        "procedure_code_pattern": r"^(\d{4}[0-9A-Z]|[A-V]\d{4})$",
    },
    "scoring": SCORING,
    "monitoring": MONITORING,
}
