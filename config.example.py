# Copy this file to config.py and fill in your app credentials.
# Values can also be passed as command-line flags or environment variables
# (GOOGLE_CLIENT_ID, ...); flags win over the environment, which wins over this file.
#
# Spotify: create an app at https://developer.spotify.com/dashboard
#   Only the client-credentials grant is used (public playlists, no user login).
#
# Google: create an OAuth client of type "Desktop app" at
#   https://console.cloud.google.com/apis/credentials and enable the YouTube Data API v3.
#   The login redirect goes to http://localhost:<random port>, which desktop clients allow.
#
# Scope used:
#   - https://www.googleapis.com/auth/youtube (create playlists, add items)

GOOGLE_CLIENT_ID = "your_google_client_id_here"
GOOGLE_CLIENT_SECRET = "your_google_client_secret_here"
SPOTIFY_CLIENT_ID = "your_spotify_client_id_here"
SPOTIFY_CLIENT_SECRET = "your_spotify_client_secret_here"
