"""Names shared between the publisher, routers and templates."""

from __future__ import annotations

# ==========================================
# Persisted options
# ==========================================
LAST_COMPILE_OPTION = "scss_last_compile_time"

# ==========================================
# Compile trigger
# ==========================================
COMPILE_ACTION = "compile_scss"
ACTION_PARAM = "action"
NONCE_PARAM = "_wpnonce"
TOOLBAR_NODE_ID = "compile-scss"
TOOLBAR_NODE_TITLE = "Compile SCSS"
COMPILE_NOTICE_COOKIE = "scss_compile_notice"

# ==========================================
# Published stylesheet handles
# ==========================================
FRONTEND_STYLE_HANDLE = "child-theme-styles"
EDITOR_STYLE_HANDLE = "child-theme-editor-styles"
STYLE_MEDIA = "all"

# ==========================================
# Notices
# ==========================================
COMPILE_SUCCESS_MESSAGE = "SCSS compiled successfully!"
COMPILER_ERROR_PREFIX = "SCSS Compiler Error: "
