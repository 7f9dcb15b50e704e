import os

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from workstats.pipeline_settings import ConfigError


# If modifying these scopes, delete the previously saved token file.
SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


#============================================
def load_credentials(credentials_path: str, token_path: str, log_fn=None) -> Credentials:
	"""
	Load cached OAuth credentials, refreshing or running the browser flow as needed.
	"""
	creds = None
	if os.path.isfile(token_path):
		creds = Credentials.from_authorized_user_file(token_path, SCOPES)
	if creds is not None and creds.valid:
		return creds
	if creds is not None and creds.expired and creds.refresh_token:
		creds.refresh(Request())
	else:
		if not os.path.isfile(credentials_path):
			raise ConfigError(
				f"Missing Google OAuth client file: {credentials_path}. "
				+ "Download it from the Google Cloud Console."
			)
		flow = InstalledAppFlow.from_client_secrets_file(credentials_path, SCOPES)
		creds = flow.run_local_server(port=0)
	if log_fn is not None:
		log_fn(f"Saving credential file to: {token_path}")
	descriptor = os.open(token_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
	with os.fdopen(descriptor, "w", encoding="utf-8") as handle:
		handle.write(creds.to_json())
	return creds


#============================================
def build_sheets_service(credentials_path: str, token_path: str, log_fn=None):
	"""
	Build an authorized Google Sheets v4 service.
	"""
	creds = load_credentials(credentials_path, token_path, log_fn=log_fn)
	return build("sheets", "v4", credentials=creds, cache_discovery=False)
