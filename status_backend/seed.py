"""
Demo content for an empty store.

Each collection is only seeded while it is empty, so running the seeder on
every start-up is safe.
"""

from __future__ import annotations

import logging

from status_backend.db import DEFAULT_ORG, DbClient

logger = logging.getLogger(__name__)

DEMO_TEAM = [
    {"username": "Alice Johnson", "email": "alice.johnson@demo.com", "org": DEFAULT_ORG},
    {"username": "Bob Smith", "email": "bob.smith@demo.com", "org": DEFAULT_ORG},
    {"username": "Carol Lee", "email": "carol.lee@demo.com", "org": DEFAULT_ORG},
    {"username": "David Kim", "email": "david.kim@demo.com", "org": DEFAULT_ORG},
]

# (goal, comments, execute, stage, assigned_to)
DEMO_TASKS = [
    (
        "General Ledger Review",
        "Audit the hospital's existing general ledger to verify account balances, identify errors, and ensure GAAP compliance.",
        "One-Time",
        "Outstanding",
        "Alice Johnson",
    ),
    (
        "Accrual Process Assessment",
        "Evaluate current accrual methods for revenue (e.g., unbilled patient services) and expenses (e.g., utilities, salaries) for accuracy and consistency.",
        "One-Time",
        "Outstanding",
        "Bob Smith",
    ),
    (
        "Chart of Accounts Validation",
        "Review and align the hospital's chart of accounts to ensure proper categorization for journal entries and financial reporting.",
        "One-Time",
        "Outstanding",
        "Carol Lee",
    ),
    (
        "Prior Period Entry Analysis",
        "Examine historical journal entries to identify recurring issues or misclassifications, preparing correcting entries as needed.",
        "One-Time",
        "Outstanding",
        "David Kim",
    ),
    (
        "Financial Statement Baseline Review",
        "Assess prior financial statements (balance sheet, income statement, cash flow statement) to establish a baseline for ongoing preparation and ensure compliance with GAAP and HIPAA.",
        "One-Time",
        "Outstanding",
        "Alice Johnson",
    ),
    (
        "Revenue Accrual Entries",
        "Post journal entries for accrued revenue from unbilled patient services, using patient encounter data and estimated insurance reimbursements.",
        "Weekly",
        "In Process",
        "Bob Smith",
    ),
    (
        "Expense Accrual Entries",
        "Record accrued expenses for incurred but unpaid costs (e.g., utilities, vendor services) based on historical data or pending invoices.",
        "Weekly",
        "In Process",
        "Carol Lee",
    ),
    (
        "Cash Receipt Journal Entries",
        "Log journal entries for cash receipts from patients or insurers, debiting cash and crediting revenue or accounts receivable.",
        "Weekly",
        "In Process",
        "David Kim",
    ),
    (
        "Preliminary Journal Review",
        "Review weekly journal entries for correct account coding, completeness, and supporting documentation (e.g., payment records).",
        "Weekly",
        "In Process",
        "Alice Johnson",
    ),
    (
        "Adjusting Entry Corrections",
        "Prepare and post adjusting entries to correct errors or discrepancies identified during weekly general ledger reviews.",
        "Weekly",
        "In Process",
        "Bob Smith",
    ),
    (
        "Month-End Accrual Finalization",
        "Finalize and post accrual entries for revenue (e.g., unbilled procedures, pending claims) and expenses (e.g., salaries, leases) to align with GAAP.",
        "Monthly",
        "Review/Discussion",
        "Carol Lee",
    ),
    (
        "Depreciation Journal Entries",
        "Record monthly depreciation entries for hospital assets (e.g., medical equipment, facilities) using established schedules.",
        "Monthly",
        "Review/Discussion",
        "David Kim",
    ),
    (
        "Prepaid Expense Amortization",
        "Post journal entries to amortize prepaid expenses (e.g., insurance, software licenses) over their applicable periods.",
        "Monthly",
        "Review/Discussion",
        "Alice Johnson",
    ),
    (
        "Financial Statement Preparation",
        "Prepare monthly financial statements (balance sheet, income statement, cash flow statement) using journal entry data, ensuring accuracy and GAAP compliance.",
        "Monthly",
        "Resolved",
        "Bob Smith",
    ),
    (
        "Comprehensive Ledger and Financial Review",
        "Conduct a detailed review of all monthly journal entries and financial statements, verifying accuracy, accrual integrity, and compliance with GAAP and HIPAA.",
        "Monthly",
        "Resolved",
        "Carol Lee",
    ),
    (
        "Accrual Reversal Entries",
        "Post reversing entries for prior month's accruals (e.g., paid invoices, settled claims) to prevent double-counting in the ledger.",
        "Monthly",
        "Resolved",
        "David Kim",
    ),
]


def demo_task_fields(goal: str, comments: str, execute: str, stage: str, assigned_to: str) -> dict:
    """Build the stored fields for one demo task; the phase mirrors the stage."""
    return {
        "phase": stage,
        "goal": goal,
        "need": "",
        "comments": comments,
        "execute": execute,
        "stage": stage,
        "comment_area": "",
        "assigned_to": assigned_to,
    }


def seed_demo_data(db: DbClient) -> dict[str, int]:
    """
    Insert demo content into every empty collection.

    Returns how many records were written per collection.
    """
    seeded = {"team": 0, "tasks": 0, "project": 0, "whiteboard": 0}

    # Team first so the demo tasks resolve to member ids.
    if db.count_members() == 0:
        for member in DEMO_TEAM:
            db.create_member(member["username"], member["email"], member["org"])
        seeded["team"] = len(DEMO_TEAM)
        logger.info("Demo team seeded")

    if db.count_tasks() == 0:
        for task in DEMO_TASKS:
            db.create_task(demo_task_fields(*task))
        seeded["tasks"] = len(DEMO_TASKS)
        logger.info("Demo phases seeded")

    if db.get_project_name() is None:
        db.save_project_name("")
        seeded["project"] = 1
        logger.info("Demo project seeded")

    if db.get_whiteboard_state() is None:
        db.save_whiteboard_state({})
        seeded["whiteboard"] = 1
        logger.info("Demo whiteboard state seeded")

    return seeded
