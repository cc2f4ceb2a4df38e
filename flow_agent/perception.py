"""感知模块：生成页面可交互元素的文本快照"""

from typing import List

from playwright.async_api import Page

from .models import PageContext

EMPTY_SNAPSHOT = "[Empty page - no interactive elements found]"


class Perception:
    """
    感知模块：提取可见的按钮、链接、输入框、下拉框和标题，
    每个元素一行，例如 [Button: "登录"]。快照只作为匹配语料，不做结构化解析。
    """

    js_code = """
    () => {
        const elements = [];

        const isVisible = (el) => {
            const style = window.getComputedStyle(el);
            return style.display !== 'none' &&
                style.visibility !== 'hidden' &&
                style.opacity !== '0' &&
                el.offsetParent !== null;
        };

        const text = (el) => (el.textContent || '').trim();

        // 可访问名称：aria-label > aria-labelledby > label > placeholder > name
        const accessibleName = (el) => {
            if (el.getAttribute('aria-label')) return el.getAttribute('aria-label');

            const labelledBy = el.getAttribute('aria-labelledby');
            if (labelledBy) {
                const labelEl = document.getElementById(labelledBy);
                if (labelEl) return text(labelEl);
            }

            if (['INPUT', 'TEXTAREA', 'SELECT'].includes(el.tagName)) {
                if (el.id) {
                    const label = document.querySelector(`label[for="${el.id}"]`);
                    if (label) return text(label);
                }
                const parentLabel = el.closest('label');
                if (parentLabel) return text(parentLabel);
                if (el.placeholder) return el.placeholder;
                if (el.name) return el.name;
            }
            return null;
        };

        document.querySelectorAll('button, [role="button"]').forEach(el => {
            if (!isVisible(el)) return;
            const name = accessibleName(el) || text(el);
            if (name) elements.push(`[Button: "${name}"]`);
        });

        document.querySelectorAll('a[href]').forEach(el => {
            if (!isVisible(el)) return;
            const name = accessibleName(el) || text(el);
            if (name) elements.push(`[Link: "${name}"]`);
        });

        document.querySelectorAll('input, textarea').forEach(el => {
            if (!isVisible(el)) return;
            const type = el.type || 'text';
            if (type === 'hidden') return;
            const name = accessibleName(el);
            if (name) elements.push(`[Input: "${name}" (${type})]`);
        });

        document.querySelectorAll('select').forEach(el => {
            if (!isVisible(el)) return;
            const name = accessibleName(el);
            if (name) elements.push(`[Select: "${name}"]`);
        });

        document.querySelectorAll('h1, h2, h3').forEach(el => {
            if (!isVisible(el)) return;
            const name = text(el);
            if (name) elements.push(`[Heading ${el.tagName}: "${name}"]`);
        });

        return elements;
    }
    """

    async def generate(self, page: Page) -> str:
        lines: List[str] = await page.evaluate(self.js_code)
        if not lines:
            return EMPTY_SNAPSHOT
        return "\n".join(lines)

    async def get_context(self, page: Page) -> PageContext:
        return PageContext(url=page.url, title=await page.title())
