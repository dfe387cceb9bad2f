"""始发地/目的地标准化：全称、简称、拼音、重点城市 → 省级名称。"""

from __future__ import annotations

import re

PROVINCE_ALIASES = {
    "北京": "北京", "京": "北京", "BEIJING": "北京", "PEKING": "北京",
    "天津": "天津", "津": "天津", "TIANJIN": "天津",
    "河北": "河北", "冀": "河北", "HEBEI": "河北",
    "山西": "山西", "晋": "山西", "SHANXI": "山西",
    "内蒙古": "内蒙古", "内蒙": "内蒙古", "蒙": "内蒙古", "NEIMENGGU": "内蒙古", "INNERMONGOLIA": "内蒙古",
    "辽宁": "辽宁", "辽": "辽宁", "LIAONING": "辽宁",
    "吉林": "吉林", "吉": "吉林", "JILIN": "吉林",
    "黑龙江": "黑龙江", "黑": "黑龙江", "HEILONGJIANG": "黑龙江",
    "上海": "上海", "沪": "上海", "SHANGHAI": "上海",
    "江苏": "江苏", "苏": "江苏", "JIANGSU": "江苏",
    "浙江": "浙江", "浙": "浙江", "ZHEJIANG": "浙江",
    "安徽": "安徽", "皖": "安徽", "ANHUI": "安徽",
    "福建": "福建", "闽": "福建", "FUJIAN": "福建",
    "江西": "江西", "赣": "江西", "JIANGXI": "江西",
    "山东": "山东", "鲁": "山东", "SHANDONG": "山东",
    "河南": "河南", "豫": "河南", "HENAN": "河南",
    "湖北": "湖北", "鄂": "湖北", "HUBEI": "湖北",
    "湖南": "湖南", "湘": "湖南", "HUNAN": "湖南",
    "广东": "广东", "粤": "广东", "GUANGDONG": "广东", "CAN": "广东",
    "广西": "广西", "桂": "广西", "GUANGXI": "广西",
    "海南": "海南", "琼": "海南", "HAINAN": "海南",
    "重庆": "重庆", "渝": "重庆", "CHONGQING": "重庆",
    "四川": "四川", "川": "四川", "蜀": "四川", "SICHUAN": "四川",
    "贵州": "贵州", "黔": "贵州", "贵": "贵州", "GUIZHOU": "贵州",
    "云南": "云南", "滇": "云南", "云": "云南", "YUNNAN": "云南",
    "西藏": "西藏", "藏": "西藏", "XIZANG": "西藏", "TIBET": "西藏",
    "陕西": "陕西", "陕": "陕西", "秦": "陕西", "SHAANXI": "陕西",
    "甘肃": "甘肃", "甘": "甘肃", "陇": "甘肃", "GANSU": "甘肃",
    "青海": "青海", "青": "青海", "QINGHAI": "青海",
    "宁夏": "宁夏", "宁": "宁夏", "NINGXIA": "宁夏",
    "新疆": "新疆", "新": "新疆", "XINJIANG": "新疆",
    "香港": "香港", "港": "香港", "HK": "香港", "HONGKONG": "香港",
    "澳门": "澳门", "澳": "澳门", "MO": "澳门", "MACAU": "澳门", "MACAO": "澳门",
    "台湾": "台湾", "台": "台湾", "TW": "台湾", "TAIWAN": "台湾",
}

# 上海各区
SHANGHAI_DISTRICTS = (
    "嘉定", "浦东", "闵行", "松江", "青浦", "奉贤", "金山", "宝山",
    "黄浦", "徐汇", "长宁", "静安", "普陀", "虹口", "杨浦", "崇明",
)

CITY_TO_PROVINCE = {
    "石家庄": "河北",
    "太原": "山西",
    "沈阳": "辽宁",
    "大连": "辽宁",
    "长春": "吉林",
    "哈尔滨": "黑龙江",
    "南京": "江苏",
    "苏州": "江苏",
    "无锡": "江苏",
    "常州": "江苏",
    "昆山": "江苏",
    "南通": "江苏",
    "杭州": "浙江",
    "宁波": "浙江",
    "温州": "浙江",
    "嘉兴": "浙江",
    "绍兴": "浙江",
    "金华": "浙江",
    "合肥": "安徽",
    "福州": "福建",
    "厦门": "福建",
    "南昌": "江西",
    "济南": "山东",
    "青岛": "山东",
    "郑州": "河南",
    "武汉": "湖北",
    "长沙": "湖南",
    "广州": "广东",
    "深圳": "广东",
    "东莞": "广东",
    "佛山": "广东",
    "海口": "海南",
    "成都": "四川",
    "贵阳": "贵州",
    "昆明": "云南",
    "西安": "陕西",
    "兰州": "甘肃",
    "西宁": "青海",
    "呼和浩特": "内蒙古",
    "南宁": "广西",
    "拉萨": "西藏",
    "银川": "宁夏",
    "乌鲁木齐": "新疆",
    **{district: "上海" for district in SHANGHAI_DISTRICTS},
}

LOCATION_LOOKUP = {**PROVINCE_ALIASES, **CITY_TO_PROVINCE}

# 包含匹配顺序：长词在前，避免 "内蒙" 先于 "内蒙古" 命中
PROVINCE_KEYWORDS = (
    "内蒙古", "黑龙江",
    "北京", "天津", "河北", "山西", "辽宁", "吉林", "上海", "江苏", "浙江", "安徽",
    "福建", "江西", "山东", "河南", "湖北", "湖南", "广东", "广西", "海南", "重庆",
    "四川", "贵州", "云南", "西藏", "陕西", "甘肃", "青海", "宁夏", "新疆", "香港",
    "澳门", "台湾",
    "内蒙",
)

ADMIN_SUFFIXES = (
    "维吾尔自治区", "回族自治区", "壮族自治区", "特别行政区", "自治区", "新区", "省", "市", "区",
)

PROVINCES = frozenset(PROVINCE_ALIASES.values())

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_province(raw: str | None) -> str:
    """将自由文本地名规整为省级名称，无法识别时尽量返回去后缀后的原文。"""
    original = str(raw or "").strip()
    if not original:
        return ""

    text = _WHITESPACE_RE.sub("", original).upper()
    if text in LOCATION_LOOKUP:
        return LOCATION_LOOKUP[text]

    for keyword in PROVINCE_KEYWORDS:
        if keyword in text:
            return PROVINCE_ALIASES[keyword]

    for suffix in ADMIN_SUFFIXES:
        if text.endswith(suffix) and len(text) > len(suffix):
            stem = text[: -len(suffix)]
            return LOCATION_LOOKUP.get(stem, stem)

    return original


def compact_city(raw: str | None) -> str:
    """城市字段只去空白，同城判断按原文精确比较。"""
    return _WHITESPACE_RE.sub("", str(raw or ""))


def is_province(name: str) -> bool:
    return name in PROVINCES
