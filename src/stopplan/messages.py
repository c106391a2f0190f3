"""User-facing warning and hint texts (Japanese, matching the client UI)."""

REST_OVERPASS_FAILED = "休憩候補抽出に失敗: {error}"
REST_PLACES_SUBSTITUTED = "Overpass候補が不足したためGoogle Placesで補完しました。"
REST_PLACES_FAILED = "Google Places補完に失敗: {error}"
REST_SEED_SUBSTITUTED = "外部API候補が不足したためローカル休憩マスターで補完しました。"
REST_SEED_FAILED = "ローカル休憩マスター補完に失敗: {error}"
REST_EMPTY = "条件に一致する休憩候補が0件です。フィルタを緩めるか経由地を追加してください。"

FUEL_MASTER_FAILED = "給油マスター候補の取得に失敗: {error}"
FUEL_LIVE_FAILED = "Google Places給油候補の取得に失敗: {error}"
FUEL_EMPTY = "条件に一致する給油候補が0件です。距離レンジやブランド設定を見直してください。"

BOOTSTRAP_SEEDED = "給油マスター初期投入: seed {count}件"
BOOTSTRAP_NO_SEED = "給油マスター初期投入: seed 0件（空のまま継続）"
BOOTSTRAP_FAILED = "給油マスター初期化に失敗: {error}"

COORDINATE_FALLBACK = "URL補正でルート再取得しました（座標フォールバック・精度低）。"

UNSUPPORTED_LINK = "Googleマップ共有URLではありません。"
ENDPOINTS_UNEXTRACTABLE = (
    "Googleマップ共有URLから地点抽出に失敗しました。追加経由地に出発地/到着地を入力して再実行してください。"
)

HINT_DEFAULT = "URL解析失敗時は追加経由地を入力して再実行してください。"
HINT_MISSING_KEY = "`.env` の STOPPLAN_GOOGLE_MAPS_API_KEY を設定してください。"
HINT_KEY_DENIED = "Google APIキーの有効期限・API制限（Directions/Places）・請求設定を確認してください。"
HINT_NOT_FOUND = ENDPOINTS_UNEXTRACTABLE
HINT_STATION_STORE = (
    "STOPPLAN_SUPABASE_URL / STOPPLAN_SUPABASE_KEY を設定し、fuel_stations テーブル作成後に再実行してください。"
)
