from typing import NewType

# Distinct key types for the two registry maps, so a patient id cannot be
# used to look up a group (or the reverse) without a type checker noticing.
GroupId = NewType("GroupId", str)
PatientId = NewType("PatientId", str)
