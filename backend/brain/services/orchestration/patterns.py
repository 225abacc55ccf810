"""
Bilingual (English / Chinese) pattern and keyword tables.

These tables are data: the classifier and scorer only iterate over them.
Extending a language means adding entries here.

Conventions:
- All patterns run against the lowercased, stripped message.
- English alternatives use word boundaries; Chinese ones do not, since
  Chinese text has no word separators.
"""
import re
from typing import Dict, List, Pattern, Tuple

from brain.services.orchestration.schema import Scope, SourceType, Timeframe


def _compile(patterns: List[str]) -> List[Pattern[str]]:
    return [re.compile(p) for p in patterns]


# Small talk: weather, time, wellbeing, thanks, farewells, jokes, music, movies.
CASUAL_PATTERNS: Dict[str, List[Pattern[str]]] = {
    "en": _compile([
        r"\bweather\b",
        r"\bwhat time is it\b|\bwhat's the time\b",
        r"\bhow are you\b",
        r"\b(thank you|thanks)\b",
        r"\b(bye|goodbye)\b",
        r"\b(jokes?|funny)\b",
        r"\b(music|songs?)\b",
        r"\b(movies?|films?)\b",
    ]),
    "zh": _compile([
        r"天气",
        r"几点了|现在几点",
        r"你好吗|你怎么样",
        r"谢谢",
        r"再见",
        r"笑话",
        r"音乐|听歌|唱歌",
        r"电影",
    ]),
}

# Whole-message greetings only ("hi", "早上好", "are you there?").
GREETING_PATTERNS: Dict[str, List[Pattern[str]]] = {
    "en": _compile([
        r"^(hi|hello|hey)[!！.。~]*$",
        r"^(good morning|good afternoon|good evening)[!！.。~]*$",
        r"^are you there[?？]*$",
    ]),
    "zh": _compile([
        r"^(哈喽|你好|嗨)[!！.。~]*$",
        r"^(早上好|下午好|晚上好)[!！.。~]*$",
        r"^(在吗|在不在)[?？]*$",
    ]),
}

# Temporal / scope word next to a work noun.
WORK_QUERY_PATTERNS: Dict[str, List[Pattern[str]]] = {
    "en": _compile([
        r"\b(today|yesterday|recent|recently)\s*(any|what)?\s*(important)?\s*(emails?|tasks?|meetings?|work|projects?)\b",
        r"\bwhat\s*(important)?\s*(emails?|tasks?|meetings?|work|projects?)\b",
        r"\b(emails?|tasks?|meetings?|work|projects?)\s*(today|yesterday)?\b",
        r"\bwho\s*sent\s*(emails?|messages?)\b",
    ]),
    "zh": _compile([
        r"(今天|昨天|最近)\s*(有|的)?\s*(什么)?\s*(重要)?\s*(邮件|任务|会议|工作|项目)",
        r"(有什么|什么)\s*(重要|新)?\s*(邮件|任务|会议|工作|项目|消息)",
        r"(邮件|任务|会议|工作|项目)\s*(吗|呢|？|\?|怎么样|如何)",
        r"(谁|哪个人)\s*(发了|发送)\s*(邮件|消息)",
        r"(工作|项目|任务)\s*(安排|状态|进度|情况)",
    ]),
}

# A message carrying one of these verbs is never a simple work query.
ANALYSIS_VERB_PATTERNS: Dict[str, List[Pattern[str]]] = {
    "en": _compile([
        r"\b(analy[sz]e|analysis|summari[sz]e|summary|report|overview|trends?|statistics)\b",
    ]),
    "zh": _compile([
        r"分析|总结|概述|报告|趋势|统计",
    ]),
}

# Analysis verb next to a collective noun or an explicit timeframe.
COMPLEX_ANALYSIS_PATTERNS: Dict[str, List[Pattern[str]]] = {
    "en": _compile([
        r"\b(analy[sz]e|analysis|report|summary|summari[sz]e|overview)\s*(of\s+)?(the\s+|our\s+|my\s+)?(team|project|work|recent)",
        r"\b(team|project)\s*(analysis|performance|status|progress)\b",
        r"\b(recent|today|yesterday|this week|this month)\s*('s\s*)?(work|project|team)\s*(analysis|summary)\b",
        r"\b(trend|statistics|data)\s*(analysis|report)\b",
        r"\b(collaboration|communication)\s*(analysis|status)\b",
    ]),
    "zh": _compile([
        r"(分析|总结|概述|报告)(一下)?\s*(团队|项目|工作|最近|今天|昨天)",
        r"(团队|项目)\s*(分析|总结|概述|表现|状态|情况|进度)",
        r"(最近|今天|昨天|这周|本周|本月)\s*(的)?\s*(工作|项目|团队)\s*(分析|总结|概述|情况)",
        r"(趋势|统计|数据)\s*(分析|报告)",
        r"(协作|合作|沟通)\s*(情况|状态|分析)",
    ]),
}

# First match wins.
TIMEFRAME_TABLE: List[Tuple[Pattern[str], Timeframe]] = [
    (re.compile(r"今天|\btoday\b"), Timeframe.TODAY),
    (re.compile(r"昨天|\byesterday\b"), Timeframe.YESTERDAY),
    (re.compile(r"最近|这周|本周|\brecent(ly)?\b|\bthis week\b"), Timeframe.THIS_WEEK),
    (re.compile(r"本月|这个月|\bthis month\b"), Timeframe.THIS_MONTH),
]

# First match wins; no match means Scope.TEAM.
SCOPE_TABLE: List[Tuple[Pattern[str], Scope]] = [
    (re.compile(r"我的|个人|\bmy\b|\bmine\b|\bpersonal\b"), Scope.PERSONAL),
    (re.compile(r"团队|我们的|\bteam\b|\bour\b"), Scope.TEAM),
    (re.compile(r"项目|产品|\bprojects?\b|\bproducts?\b"), Scope.PROJECT),
    (re.compile(r"公司|组织|\bcompany\b|\borgani[sz]ation\b"), Scope.ORGANIZATION),
]

MENTION_PATTERN = re.compile(r"@([\w.\-]+)")
PROJECT_NAME_PATTERN = re.compile(r"(?:项目|\bproject)\s*[:：]?\s*([^\s，。！？,!?:：]+)")

# Work nouns that hint at a data source; surfaced as entities.
TOPIC_PATTERN = re.compile(
    r"邮件|任务|缺陷|代码|合并请求"
    r"|\b(?:emails?|mail|inbox|tasks?|tickets?|bugs?|issues?|code|prs?|pull requests?|commits?)\b"
)

# Entity hints per source, checked in this order. Hints of two characters
# or fewer must equal the entity; longer hints match as substrings.
SOURCE_HINTS: List[Tuple[SourceType, Tuple[str, ...]]] = [
    (SourceType.GMAIL, ("邮件", "email", "mail", "inbox")),
    (SourceType.JIRA, ("任务", "缺陷", "task", "ticket", "bug", "issue")),
    (SourceType.GITHUB, ("代码", "合并请求", "code", "pull request", "commit", "pr", "prs")),
]

# Lightweight action sniffing for agent invocation.
ANALYZE_ACTION_TOKENS: Tuple[str, ...] = ("分析", "analysis", "analyze", "analyse")
SEARCH_ACTION_TOKENS: Tuple[str, ...] = ("搜索", "查找", "search", "find")

CJK_PATTERN = re.compile(r"[一-鿿]")


def matches_any(table: Dict[str, List[Pattern[str]]], text: str) -> bool:
    """True when any pattern of any language in `table` matches `text`."""
    return any(
        pattern.search(text)
        for patterns in table.values()
        for pattern in patterns
    )


def detect_language(text: str) -> str:
    """Coarse language tag used to pick reply templates: "zh" or "en"."""
    return "zh" if CJK_PATTERN.search(text) else "en"
