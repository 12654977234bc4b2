from .settings_handler import MangoQuerySettingsHandler
from .settings_dict import MangoQuerySettingsDict
