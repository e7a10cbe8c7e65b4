"""Scripts evaluated inside the observed page.

``INIT_SCRIPT`` is registered with ``BrowserContext.add_init_script`` and runs
in every frame before the page's own scripts. It forwards DOM signals through
the ``__formtrackEmit`` binding and exposes ``window.__formtrack`` for the
host's snapshot and instrumentation calls. Every entry point is wrapped so
that nothing can throw into the page.
"""

BINDING_NAME = "__formtrackEmit"

INIT_SCRIPT = r"""
(() => {
  if (window.__formtrack) {
    return;
  }

  const docId = Math.random().toString(36).slice(2) + Date.now().toString(36);
  const tokens = new WeakMap();
  const nodes = new Map();
  const instrumented = new WeakSet();
  let counter = 0;

  const emit = (kind, payload) => {
    try {
      const binding = window.__formtrackEmit;
      if (typeof binding !== 'function') {
        return;
      }
      const result = binding(kind, Object.assign({ doc: docId }, payload || {}));
      if (result && typeof result.catch === 'function') {
        result.catch(() => {});
      }
    } catch (error) {}
  };

  const pruneNodes = () => {
    for (const [token, ref] of nodes) {
      const node = ref.deref();
      if (!node || !node.isConnected) {
        nodes.delete(token);
      }
    }
  };

  const tokenFor = (element) => {
    let token = tokens.get(element);
    if (!token) {
      counter += 1;
      token = docId + '-' + counter;
      tokens.set(element, token);
      nodes.set(token, new WeakRef(element));
      if (counter % 256 === 0) {
        pruneNodes();
      }
    } else if (!nodes.has(token)) {
      nodes.set(token, new WeakRef(element));
    }
    return token;
  };

  const FORM_TAGS = new Set(['INPUT', 'SELECT', 'TEXTAREA', 'BUTTON']);

  const copyLiveState = (source, target) => {
    const tag = source.tagName;
    if (tag === 'INPUT') {
      const type = (source.type || '').toLowerCase();
      if (type === 'password') {
        target.removeAttribute('value');
      } else if (type === 'checkbox' || type === 'radio') {
        if (source.checked) {
          target.setAttribute('checked', '');
        } else {
          target.removeAttribute('checked');
        }
      } else if (type === 'file') {
        target.removeAttribute('value');
        target.setAttribute('data-formtrack-files', String(source.files ? source.files.length : 0));
      } else {
        target.setAttribute('value', source.value == null ? '' : String(source.value));
      }
    } else if (tag === 'TEXTAREA') {
      target.textContent = source.value;
    } else if (tag === 'OPTION') {
      if (source.selected) {
        target.setAttribute('selected', '');
      } else {
        target.removeAttribute('selected');
      }
    }
    if (FORM_TAGS.has(tag) && source.matches(':disabled')) {
      target.setAttribute('disabled', '');
    }
  };

  const cloneWithState = (root, tokenSelectors) => {
    const marked = new Set();
    for (const selector of tokenSelectors || []) {
      try {
        root.querySelectorAll(selector).forEach((element) => marked.add(element));
      } catch (error) {}
    }
    const clone = root.cloneNode(true);
    const originals = [root, ...root.querySelectorAll('*')];
    const copies = [clone, ...clone.querySelectorAll('*')];
    const length = Math.min(originals.length, copies.length);
    for (let index = 0; index < length; index += 1) {
      try {
        copyLiveState(originals[index], copies[index]);
        if (marked.has(originals[index])) {
          copies[index].setAttribute('data-formtrack-token', tokenFor(originals[index]));
        }
      } catch (error) {}
    }
    clone.querySelectorAll('script, style, noscript').forEach((element) => element.remove());
    return clone;
  };

  const readPath = (path) => {
    try {
      let value = window;
      for (const part of String(path).split('.')) {
        if (value == null) {
          return undefined;
        }
        value = value[part];
      }
      return value === undefined ? undefined : JSON.parse(JSON.stringify(value));
    } catch (error) {
      return undefined;
    }
  };

  const snapshot = (tokenSelectors, statePaths) => {
    const state = {};
    for (const path of statePaths || []) {
      const value = readPath(path);
      if (value !== undefined) {
        state[path] = value;
      }
    }
    const clone = cloneWithState(document.documentElement, tokenSelectors);
    return { html: clone.outerHTML, url: location.href, title: document.title || '', state };
  };

  const instrument = (token) => {
    const ref = nodes.get(token);
    const element = ref ? ref.deref() : undefined;
    if (!element || !element.isConnected) {
      nodes.delete(token);
      return false;
    }
    if (instrumented.has(element)) {
      return true;
    }
    instrumented.add(element);
    element.addEventListener('click', () => emit('click', { token }), true);
    element.addEventListener('mousedown', () => emit('press', { token }), true);
    return true;
  };

  document.addEventListener('submit', (event) => {
    try {
      const form = event.target;
      if (!form || form.tagName !== 'FORM') {
        return;
      }
      const clone = cloneWithState(form, []);
      emit('submit', {
        html: clone.outerHTML,
        action: form.action || location.href,
        url: location.href,
        title: document.title || '',
      });
    } catch (error) {}
  }, true);

  let pendingMutation = null;
  try {
    new MutationObserver(() => {
      if (pendingMutation) {
        return;
      }
      pendingMutation = setTimeout(() => {
        pendingMutation = null;
        emit('mutation', {});
      }, 250);
    }).observe(document, {
      childList: true,
      subtree: true,
      attributes: true,
      attributeFilter: ['class', 'jsname', 'role', 'aria-label', 'type', 'data-automation-id'],
    });
  } catch (error) {}

  window.__formtrack = { docId, tokenFor, snapshot, instrument, readPath };

  emit('ready', {});
  document.addEventListener('DOMContentLoaded', () => emit('ready', {}));
})();
"""

SNAPSHOT_EXPRESSION = (
    "([tokenSelectors, statePaths]) => window.__formtrack"
    " ? window.__formtrack.snapshot(tokenSelectors, statePaths) : null"
)

INSTRUMENT_EXPRESSION = (
    "(token) => window.__formtrack ? window.__formtrack.instrument(token) : false"
)