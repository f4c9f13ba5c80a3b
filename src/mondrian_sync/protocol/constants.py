# Event name constants (every frame carries one in its "event" field; canonical list lives here)
from typing import Final

# server -> clients
E_WELCOME: Final = "welcome"
E_GENERATE: Final = "generate"
E_AUDIO: Final = "audio"
E_SYNC: Final = "sync"
E_USERS: Final = "users"

# client -> server
E_JOIN: Final = "join"
E_SYNC_REQUEST: Final = "sync_request"

# websocket close code for "try again later" (server full)
WS_CLOSE_TRY_AGAIN_LATER: Final = 1013
