# Service layer for the Arduino Board Explorer
# - process_supervisor: start/stop/drain the arduino-cli daemon subprocess
# - session_channel:    gRPC transport to the daemon's ArduinoCore service
# - session_manager:    Init handshake and session state
# - query_service:      board queries against a ready session
