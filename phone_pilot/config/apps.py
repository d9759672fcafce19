"""App name to Android package mapping used by Launch actions."""

APP_PACKAGES: dict[str, str] = {
    # system
    "settings": "com.android.settings",
    "设置": "com.android.settings",
    "chrome": "com.android.chrome",
    "camera": "com.android.camera",
    "相机": "com.android.camera",
    "contacts": "com.android.contacts",
    "联系人": "com.android.contacts",
    "phone": "com.android.dialer",
    "电话": "com.android.dialer",
    "messages": "com.android.mms",
    "短信": "com.android.mms",
    "calendar": "com.android.calendar",
    "日历": "com.android.calendar",
    "clock": "com.android.deskclock",
    "时钟": "com.android.deskclock",
    "files": "com.android.documentsui",
    # social / shopping / life
    "wechat": "com.tencent.mm",
    "微信": "com.tencent.mm",
    "qq": "com.tencent.mobileqq",
    "alipay": "com.eg.android.AlipayGphone",
    "支付宝": "com.eg.android.AlipayGphone",
    "taobao": "com.taobao.taobao",
    "淘宝": "com.taobao.taobao",
    "jd": "com.jingdong.app.mall",
    "京东": "com.jingdong.app.mall",
    "meituan": "com.sankuai.meituan",
    "美团": "com.sankuai.meituan",
    "douyin": "com.ss.android.ugc.aweme",
    "抖音": "com.ss.android.ugc.aweme",
    "xiaohongshu": "com.xingin.xhs",
    "小红书": "com.xingin.xhs",
    "bilibili": "tv.danmaku.bili",
    "哔哩哔哩": "tv.danmaku.bili",
    "weibo": "com.sina.weibo",
    "微博": "com.sina.weibo",
    "amap": "com.autonavi.minimap",
    "高德地图": "com.autonavi.minimap",
    "youtube": "com.google.android.youtube",
    "gmail": "com.google.android.gm",
    "google maps": "com.google.android.apps.maps",
}


def get_package_name(app: str) -> str | None:
    """
    Resolve an app identifier to a package name.

    Known display names (any case) map through APP_PACKAGES; an identifier
    that already looks like a package name ("com.example.app") is returned
    as-is.
    """
    key = app.strip().lower()
    if key in APP_PACKAGES:
        return APP_PACKAGES[key]
    if "." in key and " " not in key:
        return app.strip()
    return None
