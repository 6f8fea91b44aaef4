# Callable functions
from .callable import AuthContext, CallableRequest, HttpsError, unwrap_callable_body
from .extract_timetable import extract_timetable
from .chat import chat
