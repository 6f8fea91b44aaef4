# Services combining storage, AI output and presentation
from .timetable import build_weekly_timetable, import_schedule_entries
from .resources import upload_resource, delete_resource, storage_path_for
