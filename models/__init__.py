"""
models/ - Entity Model
======================
Records returned by the repositories (frozen dataclasses) and the validated
insert/patch shapes accepted by them. No storage behavior lives here.
"""

from models.attachment import Attachment, AttachmentCreate, AttachmentUpdate
from models.collaborator import CollaboratorCreate, ProjectCollaborator
from models.experiment import Experiment, ExperimentCreate, ExperimentUpdate
from models.fields import UNSET
from models.note import Note, NoteCreate, NoteUpdate
from models.project import Project, ProjectCreate, ProjectUpdate
from models.user import User, UserCreate, UserUpdate

__all__ = [
    "UNSET",
    "Attachment",
    "AttachmentCreate",
    "AttachmentUpdate",
    "CollaboratorCreate",
    "Experiment",
    "ExperimentCreate",
    "ExperimentUpdate",
    "Note",
    "NoteCreate",
    "NoteUpdate",
    "Project",
    "ProjectCollaborator",
    "ProjectCreate",
    "ProjectUpdate",
    "User",
    "UserCreate",
    "UserUpdate",
]
