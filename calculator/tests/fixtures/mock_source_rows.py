"""Mock tabular source rows for testing.

Rows mirror what ``services.tabular_source.parse_csv`` produces: every
column present, values trimmed strings.
"""

from typing import Dict, List

FIELD_COLUMNS = ["job_type_id", "job_type_name", "key", "label", "type", "min", "step", "default"]


def field_row(**values: str) -> Dict[str, str]:
    """Job field row with every column present (empty unless given)."""
    row = {col: "" for col in FIELD_COLUMNS}
    row.update(values)
    return row


# =============================================================================
# JOB FIELD ROWS
# =============================================================================

# units × rateX
JOB_X_ROWS: List[Dict[str, str]] = [
    field_row(job_type_id="jobX", key="units", label="Units", type="number"),
    field_row(job_type_id="jobX", key="rateX", label="Rate", type="number"),
]

# Two job types, first-seen order printing → engraving
MIXED_JOB_ROWS: List[Dict[str, str]] = [
    field_row(job_type_id="printing", job_type_name="Printing", key="units", label="Sheets",
              type="number", min="0", step="1", default="10"),
    field_row(job_type_id="engraving", job_type_name="Engraving", key="hours", label="Hours",
              type="NUMBER", min="0", step="0.5", default="2"),
    field_row(job_type_id="printing", job_type_name="Printing (ignored)", key="inkCost", label="Ink cost",
              type="number", min="0", step="0.01", default="0.25"),
    field_row(job_type_id="printing", key="paperRate", label="Paper rate", type=" Number ",
              default="abc"),
    field_row(job_type_id="engraving", key="setupFee", label="Setup fee", type="number",
              min="x", step="", default=""),
    field_row(job_type_id="engraving", key="notes", label="Notes", type="text", default="fragile"),
    field_row(job_type_id="printing", key="client", label="Client", type="string"),
]

# Every row misses at least one required column
INVALID_JOB_ROWS: List[Dict[str, str]] = [
    field_row(job_type_id="", key="units", label="Units", type="number"),
    field_row(job_type_id="jobZ", key="", label="Units", type="number"),
    field_row(job_type_id="jobZ", key="units", label="  ", type="number"),
]


# =============================================================================
# MACHINE ROWS
# =============================================================================

MACHINE_ROWS: List[Dict[str, str]] = [
    {"machine_id": "m1", "machine_name": "Lathe"},
    {"machine_id": "m2", "machine_name": "Mill"},
]

ALIASED_MACHINE_ROWS: List[Dict[str, str]] = [
    {"MachineId": "m1", "MachineName": "Lathe"},
    {"ID": " m2 ", "Name": " Mill "},
    {"machine_id": "", "machine_name": "Nameless id"},
    {"machine_id": "m3", "machine_name": ""},
    {"id": "m1", "name": "Duplicate lathe"},
]


MACHINES_CSV = """machine_id,machine_name
m1,Lathe
m2,Mill
"""

JOB_FIELDS_CSV = """job_type_id,job_type_name,key,label,type,min,step,default
jobX,Job X,units,Units,number,0,1,1
jobX,Job X,rateX,Rate,number,0,0.01,0
jobY,Job Y,hours,Hours,number,0,0.5,2
"""
