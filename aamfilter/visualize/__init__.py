from .textutils import print_progress
