from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service

from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)


def build_driver(page_load_timeout: int = settings.SCAN_PAGE_LOAD_TIMEOUT_SECONDS) -> webdriver.Chrome:
    """
    Start a headless Chrome sized like a desktop browser.
    Caller is responsible for calling quit_driver().
    """
    chrome_options = Options()
    chrome_options.add_argument('--headless')
    chrome_options.add_argument('--no-sandbox')
    chrome_options.add_argument('--disable-dev-shm-usage')
    chrome_options.add_argument('--disable-gpu')
    chrome_options.add_argument('--window-size=1920,1080')

    if settings.CHROMEDRIVER_PATH:
        driver_service = Service(executable_path=settings.CHROMEDRIVER_PATH)
        driver = webdriver.Chrome(service=driver_service, options=chrome_options)
    else:
        driver = webdriver.Chrome(options=chrome_options)

    driver.set_page_load_timeout(page_load_timeout)
    return driver


def quit_driver(driver) -> None:
    if driver is None:
        return
    try:
        driver.quit()
    except WebDriverException as e:
        logger.warning(f"Failed to quit browser cleanly: {e}")
