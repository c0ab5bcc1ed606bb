# Socket.IO event names shared by the server and the client

# client -> server
CREATE_SESSION = "create_session"
JOIN_SESSION = "join_session"
LEAVE_SESSION = "leave_session"
SWITCH_URL = "switch_url"
PLAYER_STATE_INIT = "player_state_init"
PLAYER_STATE_CHANGED = "player_state_changed"

# server -> client
UPDATE_URL = "update_url"
SESSION_NOT_FOUND = "session_not_found"
SET_PLAYER_STATE = "set_player_state"
