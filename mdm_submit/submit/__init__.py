"""
Submit package for MDM Submit: the submission service and its wiring.
"""

from mdm_submit.submit.factory import open_submit_service
from mdm_submit.submit.service import PATIENT, PRACTITIONER, MdmSubmitService

__all__ = ["MdmSubmitService", "PATIENT", "PRACTITIONER", "open_submit_service"]
